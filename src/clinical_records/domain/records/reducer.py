from __future__ import annotations

from src.clinical_records.domain.models.app_state import AppState
from src.clinical_records.domain.records.actions import (
    Action,
    AddPatientAndRecord,
    AddPrescription,
    SetState,
)


def reduce(state: AppState, action: Action) -> AppState:
    """Apply ``action`` to ``state`` and return the resulting state.

    The input state is never modified. There are no update or delete
    transitions: the local store is append-only.

    Replaying an ``AddPatientAndRecord`` for a known patient leaves the
    patient list untouched but appends the record again.
    """

    if isinstance(action, AddPatientAndRecord):
        patient_exists = any(p.id == action.patient.id for p in state.patients)
        return state.model_copy(
            update={
                "patients": state.patients if patient_exists else state.patients + (action.patient,),
                "records": state.records + (action.record,),
            }
        )

    if isinstance(action, AddPrescription):
        return state.model_copy(update={"prescriptions": state.prescriptions + (action.prescription,)})

    if isinstance(action, SetState):
        return action.state

    raise TypeError(f"Unsupported action: {type(action).__name__}")
