"""
UI state holders behind the windows.

Each list view-model exposes ``entities``, ``is_loading``, ``error`` and
``selected`` plus select / clear_selection / add / update / delete. Errors
are logged and kept as strings for the window to show, never re-raised.
State is replaced, never mutated: every change assigns a new list.
"""
import logging
from dataclasses import replace
from datetime import datetime
from typing import Any, Callable, Dict, Generic, List, Optional, TypeVar

from clinical_records import backend
from clinical_records.domain import (
    AdministrativeArea, AdministrativeAreaType, Allergy, Area, AreaType, Caregiver,
    ClinicalEncounter, Diagnosis, Doctor, EncounterType, HealthOrganization, Medication,
    Observation, PatientRow, SpecificArea, SpecificAreaType, local_id,
)
from clinical_records.validation import validate_encounter

logger = logging.getLogger(__name__)

PATIENT_DELETE_UNSUPPORTED = "La eliminación de pacientes no está soportada"

T = TypeVar("T")


class ListViewModel(Generic[T]):
    def __init__(self):
        self.entities: List[T] = []
        self.is_loading = False
        self.error: Optional[str] = None
        self.selected: Optional[T] = None

    def select(self, entity: T) -> None:
        self.selected = entity

    def clear_selection(self) -> None:
        self.selected = None

    def find(self, entity_id: str) -> Optional[T]:
        return next((e for e in self.entities if getattr(e, "id", None) == entity_id), None)


# ===================================================================
#                     PATIENTS (backend-backed)
# ===================================================================
class PatientsViewModel(ListViewModel[PatientRow]):
    def __init__(self, service=backend):
        super().__init__()
        self.service = service

    def load(self) -> None:
        self.is_loading = True
        self.error = None
        try:
            self.entities = list(self.service.patient_rows())
        except Exception as e:
            logger.error("Error loading patients: %s", e)
            self.error = str(e) or "Error al cargar los pacientes"
        finally:
            self.is_loading = False

    def refresh(self) -> None:
        self.load()

    def add(self, form: Dict[str, str]) -> Dict[str, str]:
        """Field errors when invalid; on success the list is reloaded. Backend failures land in ``error``."""
        self.is_loading = True
        self.error = None
        errors: Dict[str, str] = {}
        try:
            errors = self.service.patient_insert(form)
            if not errors:
                self.refresh()
        except Exception as e:
            logger.error("Error creating patient: %s", e)
            self.error = str(e) or "Error al crear el paciente"
        finally:
            self.is_loading = False
        return errors

    def update(self, patient_id: str, updates: Dict[str, Any]) -> bool:
        self.is_loading = True
        self.error = None
        try:
            self.service.patient_update(patient_id, updates)
            self.refresh()
        except Exception as e:
            logger.error("Error updating patient %s: %s", patient_id, e)
            self.error = str(e) or "Error al actualizar el paciente"
        finally:
            self.is_loading = False
        return self.error is None

    def mark_deceased(self, patient_id: str, local_datetime: str) -> bool:
        self.is_loading = True
        self.error = None
        try:
            self.service.mark_deceased(patient_id, local_datetime)
            self.refresh()
        except Exception as e:
            logger.error("Error marking patient %s as deceased: %s", patient_id, e)
            self.error = str(e) or "Error al marcar el paciente como fallecido"
        finally:
            self.is_loading = False
        return self.error is None

    def delete(self, patient_id: str) -> bool:
        # the records backend has no patient delete endpoint
        logger.warning("Patient delete requested for %s", patient_id)
        self.error = PATIENT_DELETE_UNSUPPORTED
        return False


# ===================================================================
#                   DOCTORS / ORGANIZATIONS (in memory)
# ===================================================================
class LocalListViewModel(ListViewModel[T]):
    """Mock-backed list: seeded on load, changes stay in memory."""

    def seed(self) -> List[T]:
        return []

    def load(self) -> None:
        self.is_loading = True
        self.error = None
        try:
            self.entities = list(self.seed())
        finally:
            self.is_loading = False

    def add(self, **fields) -> T:
        entity = self.make(id=local_id(), **fields)
        self.entities = self.entities + [entity]
        return entity

    def update(self, entity_id: str, **updates) -> None:
        self.entities = [replace(e, **updates) if e.id == entity_id else e for e in self.entities]
        if self.selected is not None and self.selected.id == entity_id:
            self.selected = self.find(entity_id)

    def delete(self, entity_id: str) -> None:
        self.entities = [e for e in self.entities if e.id != entity_id]
        if self.selected is not None and self.selected.id == entity_id:
            self.selected = None

    def make(self, **fields) -> T:
        raise NotImplementedError


class DoctorsViewModel(LocalListViewModel[Doctor]):
    def make(self, **fields) -> Doctor:
        return Doctor(**fields)

    def seed(self) -> List[Doctor]:
        return [
            Doctor(id="1", name="Dr. Carlos López", specialty="Cardiología",
                   license_number="MED123456", email="carlos.lopez@hospital.com",
                   phone="+1234567890", hospital="Hospital General"),
            Doctor(id="2", name="Dra. Ana Martínez", specialty="Pediatría",
                   license_number="MED789012", email="ana.martinez@hospital.com",
                   phone="+1234567891", hospital="Hospital Infantil"),
        ]


def _specific(area_id: str, name: SpecificAreaType) -> Area:
    return Area(id=area_id, type=AreaType.SPECIFIC, specific_area=SpecificArea(id=area_id, name=name))


def _administrative(area_id: str, name: AdministrativeAreaType) -> Area:
    return Area(id=area_id, type=AreaType.ADMINISTRATIVE,
                administrative_area=AdministrativeArea(id=area_id, name=name))


class OrganizationsViewModel(LocalListViewModel[HealthOrganization]):
    def make(self, **fields) -> HealthOrganization:
        return HealthOrganization(**fields)

    def seed(self) -> List[HealthOrganization]:
        emergencies = _specific("a1", SpecificAreaType.EMERGENCIES)
        return [
            HealthOrganization(
                id="1", name="Hospital General Madrid", type="Hospital",
                address="Calle de la Salud 123, Madrid", phone="+34912345678",
                email="info@hospitalmadrid.com", website="www.hospitalmadrid.com",
                license_number="HOS123456",
                areas=[emergencies, _specific("a2", SpecificAreaType.RADIOLOGY),
                       _administrative("a3", AdministrativeAreaType.ADMISSION)],
                caregivers=[Caregiver(id="c1", name="Lucía Gómez", role="Enfermera", area=emergencies)],
            ),
            HealthOrganization(
                id="2", name="Clínica Barcelona", type="Clínica Privada",
                address="Avenida Diagonal 456, Barcelona", phone="+34987654321",
                email="contacto@clinicabarcelona.com", website="www.clinicabarcelona.com",
                license_number="CLI789012",
                areas=[_specific("b1", SpecificAreaType.PEDIATRICS),
                       _administrative("b2", AdministrativeAreaType.SECRETARIAT)],
            ),
        ]

    def add_area(self, organization_id: str, area: Area) -> None:
        org = self.find(organization_id)
        if org is not None:
            self.update(organization_id, areas=org.areas + [area])


# ===================================================================
#                          ENCOUNTER FORM
# ===================================================================
Submitter = Callable[..., str]


class EncounterFormModel:
    """
    State of the new-encounter form for one patient.

    The ``*_names`` lists run parallel to their sections and hold the display
    name chosen from the code search (or "" when the code was typed by hand).
    """

    def __init__(self, patient_id: str):
        self.patient_id = patient_id
        self.encounter_type: str = EncounterType.AMBULATORY.value
        self.start_date = ""
        self.end_date = ""

        self.observations: List[Observation] = []
        self.observation_names: List[str] = []
        self.medications: List[Medication] = []
        self.medication_names: List[str] = []
        self.diagnoses: List[Diagnosis] = []
        self.diagnosis_names: List[str] = []
        self.allergies: List[Allergy] = []

        self.errors: List[str] = []
        self.is_submitting = False
        self.submit_error: Optional[str] = None
        self.submit_success = False
        self.encounter_id: Optional[str] = None

    # ----------------------------- sections -----------------------------
    def add_observation(self, loinc_code: str, method: str, unit_of_measure: str, value: str,
                        name: str = "") -> bool:
        if not (loinc_code and method and unit_of_measure and value):
            logger.debug("Missing required fields for observation")
            return False
        self.observations = self.observations + [Observation(loinc_code, method, unit_of_measure, value)]
        self.observation_names = self.observation_names + [name]
        return True

    def remove_observation(self, index: int) -> None:
        self.observations = [o for i, o in enumerate(self.observations) if i != index]
        self.observation_names = [n for i, n in enumerate(self.observation_names) if i != index]

    def add_medication(self, loinc_code: str, method: str, unit_of_measure: str, value: str,
                       name: str = "") -> bool:
        if not (loinc_code and method and unit_of_measure and value):
            logger.debug("Missing required fields for medication")
            return False
        self.medications = self.medications + [Medication(loinc_code, method, unit_of_measure, value)]
        self.medication_names = self.medication_names + [name]
        return True

    def remove_medication(self, index: int) -> None:
        self.medications = [m for i, m in enumerate(self.medications) if i != index]
        self.medication_names = [n for i, n in enumerate(self.medication_names) if i != index]

    def add_diagnosis(self, description: str, diagnosis_code: str, status: str, name: str = "") -> bool:
        if not (description and diagnosis_code and status):
            logger.debug("Missing required fields for diagnosis")
            return False
        self.diagnoses = self.diagnoses + [Diagnosis(description, diagnosis_code, status)]
        self.diagnosis_names = self.diagnosis_names + [name]
        return True

    def remove_diagnosis(self, index: int) -> None:
        self.diagnoses = [d for i, d in enumerate(self.diagnoses) if i != index]
        self.diagnosis_names = [n for i, n in enumerate(self.diagnosis_names) if i != index]

    def add_allergy(self, description: str, active: bool = True) -> bool:
        if not description:
            return False
        self.allergies = self.allergies + [Allergy(description, active)]
        return True

    def remove_allergy(self, index: int) -> None:
        self.allergies = [a for i, a in enumerate(self.allergies) if i != index]

    # ----------------------------- submit -----------------------------
    def _sections(self):
        return [self.observations, self.medications, self.diagnoses, self.allergies]

    def is_ready(self) -> bool:
        return not validate_encounter(self.encounter_type, self.start_date, self._sections())

    def validate(self) -> bool:
        self.errors = validate_encounter(self.encounter_type, self.start_date, self._sections())
        return not self.errors

    def build_encounter(self) -> ClinicalEncounter:
        return ClinicalEncounter(
            id="",
            encounter_type=self.encounter_type,
            start_date=_parse_form_datetime(self.start_date),
            end_date=_parse_form_datetime(self.end_date) if self.end_date else None,
            observations=list(self.observations),
            medications=list(self.medications),
            diagnoses=list(self.diagnoses),
            allergies=list(self.allergies),
        )

    def submit(self, submitter: Optional[Submitter] = None) -> bool:
        """False without any network call when validation fails."""
        if not self.validate():
            return False
        submitter = submitter or backend.submit_encounter
        self.is_submitting = True
        self.submit_error = None
        self.submit_success = False
        try:
            encounter = self.build_encounter()
            self.encounter_id = submitter(self.patient_id, encounter, self.observation_names,
                                          self.medication_names, self.diagnosis_names)
            self.submit_success = True
        except Exception as e:
            logger.error("Error creating encounter: %s", e)
            self.submit_error = str(e) or "Error desconocido al crear el encuentro"
        finally:
            self.is_submitting = False
        return self.submit_success


def _parse_form_datetime(value: str) -> datetime:
    try:
        return backend.parse_local_datetime(value)
    except ValueError:
        return datetime.fromisoformat(value.strip())
