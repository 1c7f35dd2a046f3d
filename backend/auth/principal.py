"""The authenticated actor of a request."""

from dataclasses import dataclass
from enum import Enum

from backend.models.doctor import Doctor
from backend.models.patient import Patient


class PrincipalKind(str, Enum):
    DOCTOR = "doctor"
    PATIENT = "patient"


PRINCIPAL_MODELS = {
    PrincipalKind.DOCTOR: Doctor,
    PrincipalKind.PATIENT: Patient,
}


@dataclass(frozen=True)
class Principal:
    """Either a doctor or a patient, tagged by ``kind``."""

    kind: PrincipalKind
    id: int
    record: Doctor | Patient

    @classmethod
    def of(cls, record: Doctor | Patient) -> "Principal":
        kind = PrincipalKind.DOCTOR if isinstance(record, Doctor) else PrincipalKind.PATIENT
        return cls(kind=kind, id=record.id, record=record)

    @property
    def is_doctor(self) -> bool:
        return self.kind is PrincipalKind.DOCTOR

    @property
    def is_patient(self) -> bool:
        return self.kind is PrincipalKind.PATIENT
