from datetime import date, datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from src.clinical_records.config import Settings
from src.clinical_records.errors import PatientNotFoundError, RecordValidationError
from src.clinical_records.infra.storage.snapshot import JsonFileSnapshotStorage
from src.clinical_records.services.records.holder import StateHolder
from src.clinical_records.services.records.service import PatientRegistration, RecordsService

FIXED_NOW = datetime(2024, 10, 31, 14, 5, 7, 123000, tzinfo=timezone.utc)


class StepClock:
    def __init__(self, start: datetime, step: timedelta = timedelta(0)) -> None:
        self.now = start
        self.step = step

    def __call__(self) -> datetime:
        current = self.now
        self.now = self.now + self.step
        return current


@pytest.fixture
def storage(tmp_path):
    return JsonFileSnapshotStorage(tmp_path / "state.json", "clinicalRecordsState")


@pytest.fixture
def service(storage):
    return RecordsService(StateHolder.start(storage), clock=StepClock(FIXED_NOW))


def _registration(name: str = "Juan Pérez", **overrides) -> PatientRegistration:
    fields = {
        "name": name,
        "birth_date": date(1985, 5, 15),
        "reason_for_visit": "Dolor de cabeza",
        "diagnosis": "Cefalea tensional",
        "management_plan": "Analgesics as needed",
    }
    fields.update(overrides)
    return PatientRegistration(**fields)


def test_register_patient_creates_patient_and_first_record(service):
    patient, record = service.register_patient(_registration())

    assert patient.id == "P1730383507123"
    assert record.id == "R1730383507124"
    assert record.patient_id == patient.id
    assert record.created_at == FIXED_NOW
    assert service.dashboard().total_patients == 1
    assert service.timeline(patient.id)[0].record == record


def test_register_patient_persists_snapshot(service, storage):
    patient, _ = service.register_patient(_registration())

    reloaded = StateHolder.start(storage)
    assert reloaded.state.patients == (patient,)
    assert len(reloaded.state.records) == 1


def test_ids_never_repeat_within_one_millisecond(service):
    first, _ = service.register_patient(_registration("Ana Torres"))
    second, _ = service.register_patient(_registration("Carlos Ruiz"))

    assert first.id != second.id
    assert [p.name for p in service.search_patients()] == ["Ana Torres", "Carlos Ruiz"]


def test_registration_requires_name_and_diagnosis():
    with pytest.raises(ValidationError):
        _registration(name="   ")
    with pytest.raises(ValidationError):
        _registration(diagnosis="")


def test_add_prescription_appends_to_timeline(storage):
    service = RecordsService(StateHolder.start(storage), clock=StepClock(FIXED_NOW, timedelta(minutes=5)))
    patient, _ = service.register_patient(_registration())

    prescription = service.add_prescription(patient.id, "Ibuprofeno 400mg", "Cada 8 horas")

    assert prescription.id.startswith("PRES")
    assert prescription.created_at == FIXED_NOW + timedelta(minutes=5)
    timeline = service.timeline(patient.id)
    assert [item.kind for item in timeline] == ["prescription", "record"]
    assert StateHolder.start(storage).state.prescriptions == (prescription,)


def test_add_prescription_rejects_blank_medications(service):
    patient, _ = service.register_patient(_registration())

    with pytest.raises(RecordValidationError):
        service.add_prescription(patient.id, "  \n ")
    assert service.dashboard().total_prescriptions == 0


def test_add_prescription_for_unknown_patient(service):
    with pytest.raises(PatientNotFoundError) as excinfo:
        service.add_prescription("P0", "Paracetamol")

    assert excinfo.value.patient_id == "P0"


def test_get_patient_unknown(service):
    with pytest.raises(PatientNotFoundError):
        service.get_patient("P404")


def test_prescription_document(storage):
    settings = Settings(
        clinic_title="Clínica Central",
        clinic_doctor_name="Dra. Elena Ríos",
        clinic_speciality="Medicina Familiar",
    )
    service = RecordsService(StateHolder.start(storage), clock=StepClock(FIXED_NOW), settings=settings)
    patient, _ = service.register_patient(_registration())
    prescription = service.add_prescription(patient.id, "Ibuprofeno 400mg", "Cada 8 horas")

    filename, text = service.prescription_document(prescription.id)

    assert filename == "formula_Juan_Pérez_31-10-2024.txt"
    lines = text.splitlines()
    assert lines[0].strip() == "Clínica Central"
    assert "Dra. Elena Ríos" in lines
    assert "Patient: Juan Pérez" in text
    assert "Date: 31/10/2024" in text
    assert "Rp/" in lines
    assert lines.index("Medications:") < lines.index("Ibuprofeno 400mg") < lines.index("Indications:")
    assert "Cada 8 horas" in lines
    assert "Physician's signature" in text


def test_prescription_document_unknown_id(service):
    with pytest.raises(LookupError):
        service.prescription_document("PRES0")
