from __future__ import annotations


class ClinicalRecordsError(Exception):
    """Base class for errors raised by the clinical records services."""


class RecordValidationError(ClinicalRecordsError, ValueError):
    """Input was rejected before any state change."""


class PatientNotFoundError(ClinicalRecordsError, LookupError):
    def __init__(self, patient_id: object) -> None:
        super().__init__(f"Patient not found: {patient_id}")
        self.patient_id = patient_id


class PersistenceError(ClinicalRecordsError):
    """A relational store operation failed. The cause is chained."""


class AuthenticationError(ClinicalRecordsError):
    """Credentials were missing or wrong. The message is safe to show."""


class AccountLockedError(AuthenticationError):
    pass
