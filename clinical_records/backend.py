import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import replace
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Sequence

from clinical_records import api_client as api
from clinical_records.converters import (
    condition_to_domain, from_fhir_allergy_intolerance, from_fhir_encounter,
    from_fhir_medication_request, from_fhir_observation, iso_utc, patient_form_to_fhir,
    patient_to_detail, patient_to_row, to_fhir_allergy_intolerance,
    to_fhir_condition, to_fhir_encounter, to_fhir_medication_request, to_fhir_observation,
)
from clinical_records.domain import ClinicalEncounter, PatientDetail, PatientRow
from clinical_records.validation import validate_patient_form

logger = logging.getLogger(__name__)

LOCAL_DATETIME_FORMAT = "%Y-%m-%dT%H:%M"


# ----------------------------- helpers -----------------------------
def _unwrap(data: Any) -> Any:
    # some endpoints wrap the envelope twice: {success, data: {success, data: ...}}
    if isinstance(data, dict) and "data" in data and "resourceType" not in data:
        return data["data"]
    return data


def _as_list(data: Any) -> List[Dict[str, Any]]:
    data = _unwrap(data)
    return [r for r in data if isinstance(r, dict)] if isinstance(data, list) else []


def parse_local_datetime(value: str) -> datetime:
    """'2024-01-01T10:00' as typed into the form, local wall-clock time."""
    return datetime.strptime(value.strip(), LOCAL_DATETIME_FORMAT)


def _with_names(items: Sequence[Any], names: Sequence[str], attr: str) -> List[Any]:
    # a display name picked from the code search replaces the typed code
    out = []
    for i, item in enumerate(items):
        name = names[i] if i < len(names) else ""
        out.append(replace(item, **{attr: name}) if name else item)
    return out


# ===================================================================
#                            PATIENTS
# ===================================================================
def patient_rows() -> List[PatientRow]:
    resp = api.get_patients()
    if not isinstance(resp.data, list):
        raise ValueError("Los datos de pacientes no están en el formato esperado")
    return [patient_to_row(p) for p in resp.data]


def patient_search(rows: Sequence[PatientRow], name: str = "", patient_id: str = "") -> List[PatientRow]:
    pn = name.strip().lower()
    pid = patient_id.strip()
    out: List[PatientRow] = []
    for row in rows:
        if pid and pid not in row.id: continue
        if pn and pn not in row.name.lower(): continue
        out.append(row)
    return out


def patient_resource(patient_id: str) -> Dict[str, Any]:
    if not patient_id: raise ValueError("patient id is required")
    return _unwrap(api.get_patient_by_id(patient_id).data) or {}


def patient_detail(patient_id: str) -> PatientDetail:
    return patient_to_detail(patient_resource(patient_id))


def patient_insert(form: Dict[str, str]) -> Dict[str, str]:
    """POST /patients when the form is valid. Returns the field errors (empty on success)."""
    errors = validate_patient_form(form)
    if errors:
        return errors
    resource = patient_form_to_fhir(form)
    logger.info("Creating patient %s %s", form.get("first_name"), form.get("last_name"))
    resp = api.create_patient(resource)
    if resp.status not in (200, 201):
        raise ValueError("Error en la respuesta del servidor")
    return {}


def patient_update(patient_id: str, updates: Dict[str, Any]) -> None:
    if not patient_id: raise ValueError("patient id is required")
    if updates:
        api.update_patient(patient_id, updates)


def mark_deceased(patient_id: str, local_datetime: str) -> str:
    """PATCH deceasedDateTime. Returns the ISO UTC value that was sent."""
    if not patient_id: raise ValueError("patient id is required")
    if not local_datetime or not local_datetime.strip():
        raise ValueError("deceased date/time is required")
    iso = iso_utc(parse_local_datetime(local_datetime))
    logger.info("Marking patient %s as deceased at %s", patient_id, iso)
    resp = api.mark_patient_as_deceased(patient_id, iso)
    if resp.status not in (200, 204):
        raise ValueError("Error en la respuesta del servidor")
    return iso


# ===================================================================
#                            ENCOUNTERS
# ===================================================================
def submit_encounter(patient_id: str, encounter: ClinicalEncounter,
                     observation_names: Sequence[str] = (),
                     medication_names: Sequence[str] = (),
                     diagnosis_names: Sequence[str] = ()) -> str:
    """
    POST the Encounter, then every child resource in parallel.

    Any failing child fails the whole submission; resources already created
    on the backend are left there.
    """
    resp = api.create_encounter(to_fhir_encounter(encounter, patient_id))
    created = _unwrap(resp.data)
    encounter_id = created.get("id") if isinstance(created, dict) else None
    if not encounter_id:
        raise ValueError("No se pudo obtener el ID del encuentro creado")
    logger.info("Encounter created with ID: %s", encounter_id)

    calls: List[Callable[[], api.ApiResponse]] = []
    for obs in _with_names(encounter.observations, observation_names, "loinc_code"):
        calls.append(lambda o=obs: api.create_observation(to_fhir_observation(o, patient_id, encounter_id)))
    for med in _with_names(encounter.medications, medication_names, "loinc_code"):
        calls.append(lambda m=med: api.create_medication_request(
            to_fhir_medication_request(m, patient_id, encounter_id)))
    for diag in _with_names(encounter.diagnoses, diagnosis_names, "diagnosis_code"):
        calls.append(lambda d=diag: api.create_condition(to_fhir_condition(d, patient_id, encounter_id)))
    for allergy in encounter.allergies:
        calls.append(lambda a=allergy: api.create_allergy_intolerance(
            to_fhir_allergy_intolerance(a, patient_id, encounter_id)))

    if calls:
        logger.info("Creating %d related resources...", len(calls))
        with ThreadPoolExecutor(max_workers=min(8, len(calls))) as pool:
            futures = [pool.submit(c) for c in calls]
            # result() re-raises the first failure after every call has finished
            for f in futures:
                f.result()
    return encounter_id


def patient_encounters(patient_id: str) -> List[ClinicalEncounter]:
    """Encounters of a patient with their child resources attached by encounter reference."""
    encounters = [from_fhir_encounter(e) for e in _as_list(api.get_encounters_by_patient(patient_id).data)]
    children: Dict[str, Dict[str, list]] = {
        f"Encounter/{e.id}": {"observations": [], "medications": [], "diagnoses": [], "allergies": []} for e in encounters
    }

    sources = (
        ("observations", api.get_observations_by_patient, from_fhir_observation),
        ("medications", api.get_medication_requests_by_patient, from_fhir_medication_request),
        ("diagnoses", api.get_conditions_by_patient, condition_to_domain),
        ("allergies", api.get_allergy_intolerances_by_patient, from_fhir_allergy_intolerance),
    )
    for key, fetch, convert in sources:
        for res in _as_list(fetch(patient_id).data):
            ref = (res.get("encounter") or {}).get("reference")
            if ref in children:
                children[ref][key].append(convert(res))

    merged = [replace(e, **children[f"Encounter/{e.id}"]) for e in encounters]
    merged.sort(key=lambda e: iso_utc(e.start_date), reverse=True)
    return merged


def encounter_summary(encounter: ClinicalEncounter) -> tuple:
    end = encounter.end_date.strftime("%Y-%m-%d %H:%M") if encounter.end_date else "-"
    etype = getattr(encounter.encounter_type, "value", encounter.encounter_type)
    return (encounter.id, etype, encounter.start_date.strftime("%Y-%m-%d %H:%M"), end,
            len(encounter.observations), len(encounter.medications),
            len(encounter.diagnoses), len(encounter.allergies))


def check_backend() -> Optional[str]:
    """Returns an error string when the backend is unreachable, else None."""
    try:
        api.health_check()
        return None
    except Exception as e:
        return str(e)
