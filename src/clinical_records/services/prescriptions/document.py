from __future__ import annotations

import re
import textwrap
from typing import List, Optional

from src.clinical_records.config import Settings, settings as default_settings
from src.clinical_records.domain.models.patient import Patient
from src.clinical_records.domain.models.prescription import Prescription

PAGE_WIDTH = 72
SIGNATURE_LABEL = "Physician's signature"
FOOTER = "This document is a digital representation of a medical prescription."


def _wrap_block(text: str) -> List[str]:
    lines: List[str] = []
    for paragraph in (text or "").splitlines() or [""]:
        lines.extend(textwrap.wrap(paragraph, width=PAGE_WIDTH) or [""])
    return lines


def _rule() -> str:
    return "-" * PAGE_WIDTH


def render_prescription(
    prescription: Prescription,
    patient: Patient,
    *,
    settings: Optional[Settings] = None,
) -> str:
    """Render a printable prescription as plain text.

    Layout, top to bottom: clinic header, patient and date line, the ``Rp/``
    marker, medications, indications, then the signature line and footer.
    """

    cfg = settings or default_settings
    issued = prescription.created_at.strftime("%d/%m/%Y")

    lines: List[str] = [
        cfg.clinic_title.center(PAGE_WIDTH).rstrip(),
        cfg.clinic_doctor_name,
        cfg.clinic_speciality,
        _rule(),
    ]
    patient_label = f"Patient: {patient.name}"
    date_label = f"Date: {issued}"
    gap = max(PAGE_WIDTH - len(patient_label) - len(date_label), 2)
    lines.append(patient_label + " " * gap + date_label)
    lines.extend([_rule(), "", "Rp/", "", "Medications:"])
    lines.extend(_wrap_block(prescription.medications))
    lines.extend(["", "Indications:"])
    lines.extend(_wrap_block(prescription.indications))
    lines.extend(
        [
            "",
            "",
            _rule(),
            SIGNATURE_LABEL.center(PAGE_WIDTH).rstrip(),
            FOOTER.center(PAGE_WIDTH).rstrip(),
        ]
    )
    return "\n".join(lines) + "\n"


def prescription_filename(prescription: Prescription, patient: Patient) -> str:
    name = re.sub(r"\s", "_", patient.name)
    return f"formula_{name}_{prescription.created_at.strftime('%d-%m-%Y')}.txt"
