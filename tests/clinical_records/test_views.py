from datetime import date, datetime, timedelta, timezone

from src.clinical_records.domain.models.app_state import AppState
from src.clinical_records.domain.models.clinical_record import ClinicalRecord
from src.clinical_records.domain.models.patient import Patient
from src.clinical_records.domain.models.prescription import Prescription
from src.clinical_records.domain.records.views import (
    calculate_age,
    dashboard_counts,
    filter_patients,
    find_patient,
    patient_timeline,
)

BASE = datetime(2024, 3, 1, 8, 0, tzinfo=timezone.utc)


def _state() -> AppState:
    patients = (
        Patient(id="P1", name="maria lopez", birth_date=date(1980, 1, 1)),
        Patient(id="P2", name="Carlos Ruiz", birth_date=date(1975, 6, 15)),
        Patient(id="P3", name="Ana Torres", birth_date=date(2000, 12, 31)),
    )
    records = (
        ClinicalRecord(id="R1", patient_id="P1", created_at=BASE, diagnosis="Flu"),
        ClinicalRecord(id="R2", patient_id="P1", created_at=BASE + timedelta(days=10), diagnosis="Follow-up"),
        ClinicalRecord(id="R3", patient_id="P2", created_at=BASE + timedelta(days=1), diagnosis="Sprain"),
    )
    prescriptions = (
        Prescription(id="PRES1", patient_id="P1", created_at=BASE + timedelta(days=5), medications="Paracetamol"),
    )
    return AppState(patients=patients, records=records, prescriptions=prescriptions)


def test_empty_search_returns_everyone_alphabetically():
    names = [p.name for p in filter_patients(_state(), "")]
    assert names == ["Ana Torres", "Carlos Ruiz", "maria lopez"]


def test_search_is_case_insensitive_substring():
    assert [p.id for p in filter_patients(_state(), "LOP")] == ["P1"]
    assert [p.id for p in filter_patients(_state(), "r")] == ["P3", "P2", "P1"]


def test_search_without_match_is_empty():
    assert filter_patients(_state(), "zzz") == []


def test_accented_names_sort_with_their_base_letter():
    names = ("Zoe", "Álvaro", "Bea", "Íñigo", "Ignacio", "ana")
    state = AppState(
        patients=tuple(Patient(id=f"P{i}", name=n, birth_date=date(1990, 1, 1)) for i, n in enumerate(names))
    )

    assert [p.name for p in filter_patients(state)] == ["Álvaro", "ana", "Bea", "Ignacio", "Íñigo", "Zoe"]
    assert [p.name for p in filter_patients(state, "álv")] == ["Álvaro"]


def test_timeline_is_most_recent_first_and_tagged():
    items = patient_timeline(_state(), "P1")

    assert [item.kind for item in items] == ["record", "prescription", "record"]
    assert [item.created_at for item in items] == sorted((i.created_at for i in items), reverse=True)
    assert items[0].record.id == "R2"
    assert items[1].prescription.id == "PRES1"
    assert items[2].record.id == "R1"


def test_timeline_for_unknown_patient_is_empty():
    assert patient_timeline(_state(), "nope") == []


def test_timeline_ties_keep_records_first():
    state = AppState(
        patients=(Patient(id="P1", name="A", birth_date=date(1990, 1, 1)),),
        records=(ClinicalRecord(id="R1", patient_id="P1", created_at=BASE),),
        prescriptions=(Prescription(id="PRES1", patient_id="P1", created_at=BASE, medications="x"),),
    )
    assert [item.kind for item in patient_timeline(state, "P1")] == ["record", "prescription"]


def test_dashboard_counts():
    counts = dashboard_counts(_state())
    assert (counts.total_patients, counts.total_records, counts.total_prescriptions) == (3, 3, 1)


def test_find_patient():
    assert find_patient(_state(), "P2").name == "Carlos Ruiz"
    assert find_patient(_state(), "P404") is None


def test_calculate_age_counts_only_past_birthdays():
    assert calculate_age(date(1990, 6, 15), today=date(2024, 6, 14)) == 33
    assert calculate_age(date(1990, 6, 15), today=date(2024, 6, 15)) == 34
