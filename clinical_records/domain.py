"""
UI-side view of clinical concepts.

These records are what the windows and view-models work with; the wire
format is FHIR (see fhir_types / converters). Records are never mutated in
place, updates build a new record with dataclasses.replace.
"""
import time
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import List, Optional, Union


# ----------------------------- people -----------------------------
@dataclass(frozen=True)
class IdentityDocument:
    identification_type: str
    country: str
    identification_value: str


@dataclass(frozen=True)
class Person:
    identity_document: IdentityDocument
    date_of_birth: date
    first_name: str
    last_name: str
    gender: str


@dataclass(frozen=True)
class ContactMeans:
    cellular: str = ""
    email: str = ""
    phone: str = ""


@dataclass(frozen=True)
class Address:
    neighborhood: str = ""
    street: str = ""
    city: str = ""
    postal_code: str = ""
    department: str = ""
    door_number: str = ""
    apartment_number: str = ""


@dataclass(frozen=True)
class PatientData:
    contact_means: ContactMeans
    height: float
    weight: float
    address: Address


@dataclass(frozen=True)
class Patient(Person):
    patient_data: PatientData


@dataclass(frozen=True)
class PatientRow:
    id: str
    name: str
    birth_date: str
    gender: str
    death_date: Optional[str] = None


@dataclass(frozen=True)
class PatientDetail:
    id: str
    name: str
    birth_date: str
    gender: str
    death_date: Optional[str]
    phone: str
    mobile: str
    email: str
    address: str
    district: str
    height: str
    weight: str


# ----------------------------- encounters -----------------------------
class EncounterType(str, Enum):
    AMBULATORY = "Ambulatory"
    HOME = "Home"
    EMERGENCY = "Emergency"
    HOSPITALIZATION = "Hospitalization"
    VIRTUAL = "Virtual"


ENCOUNTER_TYPES = [t.value for t in EncounterType]

Value = Union[str, float]


@dataclass(frozen=True)
class Observation:
    loinc_code: str
    method: str
    unit_of_measure: str
    value: Value


@dataclass(frozen=True)
class Medication:
    loinc_code: str
    method: str
    unit_of_measure: str
    value: Value


@dataclass(frozen=True)
class Diagnosis:
    description: str
    diagnosis_code: str
    status: str


@dataclass(frozen=True)
class Allergy:
    description: str
    active: bool = True


@dataclass(frozen=True)
class ClinicalEncounter:
    id: str
    encounter_type: Union[EncounterType, str]
    start_date: datetime
    end_date: Optional[datetime] = None
    observations: List[Observation] = field(default_factory=list)
    medications: List[Medication] = field(default_factory=list)
    diagnoses: List[Diagnosis] = field(default_factory=list)
    allergies: List[Allergy] = field(default_factory=list)

    def has_clinical_data(self) -> bool:
        return bool(self.observations or self.medications or self.diagnoses or self.allergies)


# ----------------------------- organizations -----------------------------
class SpecificAreaType(str, Enum):
    EMERGENCIES = "Urgencias"
    RADIOLOGY = "Radiología"
    PEDIATRICS = "Pediatría"
    INTERNAL_MEDICINE = "Medicina interna"
    LABORATORY = "Laboratorio"


class AdministrativeAreaType(str, Enum):
    SECRETARIAT = "Secretaría"
    ARCHIVE = "Archivo"
    ADMISSION = "Admisión"


class AreaType(str, Enum):
    SPECIFIC = "Specific"
    ADMINISTRATIVE = "Administrative"


@dataclass(frozen=True)
class SpecificArea:
    id: str
    name: SpecificAreaType
    description: Optional[str] = None


@dataclass(frozen=True)
class AdministrativeArea:
    id: str
    name: AdministrativeAreaType
    description: Optional[str] = None


@dataclass(frozen=True)
class Area:
    id: str
    type: AreaType
    specific_area: Optional[SpecificArea] = None
    administrative_area: Optional[AdministrativeArea] = None

    @property
    def name(self) -> str:
        inner = self.specific_area if self.type == AreaType.SPECIFIC else self.administrative_area
        return inner.name.value if inner else ""


@dataclass(frozen=True)
class Caregiver:
    id: str
    name: str
    role: str
    area: Optional[Area] = None


@dataclass(frozen=True)
class HealthOrganization:
    id: str
    name: str
    description: Optional[str] = None
    areas: List[Area] = field(default_factory=list)
    caregivers: List[Caregiver] = field(default_factory=list)
    type: str = ""
    address: str = ""
    phone: str = ""
    email: str = ""
    website: str = ""
    license_number: str = ""


@dataclass(frozen=True)
class Doctor:
    id: str
    name: str
    specialty: str = ""
    license_number: str = ""
    email: str = ""
    phone: str = ""
    hospital: str = ""


def local_id() -> str:
    """Millisecond clock id for records that only live in memory."""
    return str(int(time.time() * 1000))
