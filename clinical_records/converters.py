"""
FHIR <-> domain conversion.

Everything here is a pure reshaping of dicts and dataclasses. Missing FHIR
fields fall back to a placeholder ("Unknown", "", today) instead of raising,
and a round trip is not guaranteed to give back the original record.
"""
import logging
import math
import re
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Mapping, Optional

from clinical_records.domain import (
    Address, Allergy, ClinicalEncounter, ContactMeans, Diagnosis, EncounterType,
    IdentityDocument, Medication, Observation, Patient, PatientData, PatientDetail,
    PatientRow,
)
from clinical_records.fhir_types import (
    ACT_CODE_SYSTEM, ALLERGY_CLINICAL_SYSTEM, ALLERGY_SNOMED_CODE, ALLERGY_VERIFICATION_SYSTEM,
    CONDITION_CLINICAL_SYSTEM, CONDITION_VER_STATUS_SYSTEM, IDENTIFIER_OID_PREFIX,
    IDENTIFIER_TYPE_SYSTEM, LOINC_SYSTEM, SNOMED_SYSTEM, UCUM_SYSTEM,
)

logger = logging.getLogger(__name__)

UNKNOWN = "Unknown"
NO_NAME = "Nombre no disponible"

# domain type -> (ActCode, display)
_ENCOUNTER_CLASS = {
    EncounterType.AMBULATORY: ("AMB", "ambulatory"),
    EncounterType.EMERGENCY: ("EMER", "emergency"),
    EncounterType.HOSPITALIZATION: ("IMP", "inpatient encounter"),
    EncounterType.VIRTUAL: ("VR", "virtual"),
    EncounterType.HOME: ("HH", "home health"),
}
_CLASS_TO_TYPE = {code.lower(): t for t, (code, _) in _ENCOUNTER_CLASS.items()}

_GENDER_LABELS = {"male": "Masculino", "female": "Femenino", "other": "Otro"}

# form id type -> (v2-0203 code, display)
_IDENTIFIER_TYPES = {
    "CI": ("SS", "Social Security number"),
    "PASSPORT": ("PPN", "Passport Number"),
}
_DEFAULT_IDENTIFIER_TYPE = ("DL", "Driver License")

_LEADING_NUMBER = re.compile(r"^\s*[-+]?(\d+\.?\d*|\.\d+)([eE][-+]?\d+)?")


# ----------------------------- helpers -----------------------------
def _first(seq: Any) -> Dict[str, Any]:
    if isinstance(seq, list) and seq and isinstance(seq[0], dict):
        return seq[0]
    return {}


def _coding(system: str, code: str, display: str) -> Dict[str, str]:
    return {"system": system, "code": code, "display": display}


def _concept(coding: List[Dict[str, str]], text: Optional[str] = None) -> Dict[str, Any]:
    cc: Dict[str, Any] = {"coding": coding}
    if text is not None:
        cc["text"] = text
    return cc


def _patient_ref(patient_id: str) -> Dict[str, str]:
    return {"reference": f"Patient/{patient_id}", "type": "Patient"}


def _encounter_ref(encounter_id: str) -> Dict[str, str]:
    return {"reference": f"Encounter/{encounter_id}", "type": "Encounter"}


def iso_utc(dt: datetime) -> str:
    """Naive datetimes are taken as local wall-clock time."""
    return dt.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_datetime(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        try:
            return datetime.strptime(value[:10], "%Y-%m-%d")
        except ValueError:
            return None


def to_number(value: Any) -> float:
    """Leading number of the value, like "95 mg" -> 95. Anything else, NaN or infinity is 0."""
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return value if math.isfinite(value) else 0
    m = _LEADING_NUMBER.match(str(value or ""))
    if not m:
        return 0
    n = float(m.group(0))
    return n if math.isfinite(n) else 0


def _concept_code(cc: Optional[Mapping[str, Any]]) -> str:
    return _first((cc or {}).get("coding")).get("code") or ""


def _concept_text(cc: Optional[Mapping[str, Any]]) -> str:
    cc = cc or {}
    return cc.get("text") or _first(cc.get("coding")).get("display") or ""


def _telecom(resource: Mapping[str, Any], system: str, use: Optional[str] = None) -> str:
    for t in resource.get("telecom") or []:
        if t.get("system") == system and (use is None or t.get("use") == use):
            return t.get("value") or ""
    return ""


# ===================================================================
#                            ENCOUNTER
# ===================================================================
def encounter_class(encounter_type: Any) -> Dict[str, str]:
    try:
        key = EncounterType(encounter_type)
    except ValueError:
        key = EncounterType.AMBULATORY
    code, display = _ENCOUNTER_CLASS[key]
    return _coding(ACT_CODE_SYSTEM, code, display)


def encounter_type_from_code(code: Optional[str]) -> EncounterType:
    return _CLASS_TO_TYPE.get((code or "").lower(), EncounterType.AMBULATORY)


def to_fhir_encounter(encounter: ClinicalEncounter, patient_id: str) -> Dict[str, Any]:
    period = {"start": iso_utc(encounter.start_date)}
    if encounter.end_date:
        period["end"] = iso_utc(encounter.end_date)
    return {
        "resourceType": "Encounter",
        "status": "finished",
        "class": encounter_class(encounter.encounter_type),
        "subject": _patient_ref(patient_id),
        "period": period,
    }


def from_fhir_encounter(resource: Mapping[str, Any]) -> ClinicalEncounter:
    """Child lists stay empty, backend.patient_encounters fills them."""
    period = resource.get("period") or {}
    return ClinicalEncounter(
        id=resource.get("id") or "unknown",
        encounter_type=encounter_type_from_code((resource.get("class") or {}).get("code")),
        start_date=parse_datetime(period.get("start")) or datetime.now(),
        end_date=parse_datetime(period.get("end")),
    )


# ===================================================================
#                     ENCOUNTER CHILD RESOURCES
# ===================================================================
def to_fhir_observation(observation: Observation, patient_id: str,
                        encounter_id: Optional[str] = None) -> Dict[str, Any]:
    code = observation.loinc_code
    obs: Dict[str, Any] = {
        "resourceType": "Observation",
        "status": "final",
        "code": _concept([_coding(LOINC_SYSTEM, code, code)], code),
        "subject": _patient_ref(patient_id),
        "valueQuantity": {
            "value": to_number(observation.value),
            "unit": observation.unit_of_measure,
            "system": UCUM_SYSTEM,
            "code": observation.unit_of_measure,
        },
    }
    if encounter_id:
        obs["encounter"] = _encounter_ref(encounter_id)
    if observation.method:
        obs["method"] = _concept([], observation.method)
    return obs


def from_fhir_observation(resource: Mapping[str, Any]) -> Observation:
    qty = resource.get("valueQuantity") or {}
    value = qty.get("value")
    if value is None:
        value = resource.get("valueString") or ""
    cc = resource.get("code") or {}
    return Observation(
        loinc_code=_concept_code(cc) or cc.get("text") or UNKNOWN,
        method=_concept_text(resource.get("method")),
        unit_of_measure=qty.get("unit") or "",
        value=value,
    )


def to_fhir_medication_request(medication: Medication, patient_id: str,
                               encounter_id: Optional[str] = None) -> Dict[str, Any]:
    code = medication.loinc_code
    req: Dict[str, Any] = {
        "resourceType": "MedicationRequest",
        "status": "active",
        "intent": "order",
        "medicationCodeableConcept": _concept([_coding(SNOMED_SYSTEM, code, code)], code),
        "subject": _patient_ref(patient_id),
        "dosageInstruction": [{
            "text": f"{medication.value} {medication.unit_of_measure}",
            "route": _concept([], medication.method),
        }],
    }
    if encounter_id:
        req["encounter"] = _encounter_ref(encounter_id)
    return req


def from_fhir_medication_request(resource: Mapping[str, Any]) -> Medication:
    cc = resource.get("medicationCodeableConcept") or {}
    dosage = _first(resource.get("dosageInstruction"))
    value, _, unit = (dosage.get("text") or "").strip().partition(" ")
    return Medication(
        loinc_code=_concept_code(cc) or cc.get("text") or UNKNOWN,
        method=_concept_text(dosage.get("route")),
        unit_of_measure=unit.strip(),
        value=value,
    )


def to_fhir_condition(diagnosis: Diagnosis, patient_id: str,
                      encounter_id: Optional[str] = None) -> Dict[str, Any]:
    cond: Dict[str, Any] = {
        "resourceType": "Condition",
        "clinicalStatus": _concept([_coding(CONDITION_CLINICAL_SYSTEM, "active", "Active")]),
        "verificationStatus": _concept([_coding(CONDITION_VER_STATUS_SYSTEM, "confirmed", "Confirmed")]),
        "code": _concept([_coding(SNOMED_SYSTEM, diagnosis.diagnosis_code, diagnosis.description)],
                         diagnosis.description),
        "subject": _patient_ref(patient_id),
        "onsetDateTime": iso_utc(datetime.now(timezone.utc)),
    }
    if encounter_id:
        cond["encounter"] = _encounter_ref(encounter_id)
    return cond


def condition_to_domain(resource: Mapping[str, Any]) -> Diagnosis:
    cc = resource.get("code") or {}
    return Diagnosis(
        description=_concept_text(cc) or "Unknown condition",
        diagnosis_code=_concept_code(cc) or resource.get("id") or UNKNOWN,
        status=(_concept_code(resource.get("clinicalStatus"))
                or _concept_code(resource.get("verificationStatus"))
                or "unknown"),
    )


def to_fhir_allergy_intolerance(allergy: Allergy, patient_id: str,
                                encounter_id: Optional[str] = None) -> Dict[str, Any]:
    status = ("active", "Active") if allergy.active else ("inactive", "Inactive")
    ai: Dict[str, Any] = {
        "resourceType": "AllergyIntolerance",
        "clinicalStatus": _concept([_coding(ALLERGY_CLINICAL_SYSTEM, *status)]),
        "verificationStatus": _concept([_coding(ALLERGY_VERIFICATION_SYSTEM, "confirmed", "Confirmed")]),
        "type": "allergy",
        "category": ["medication"],
        "criticality": "high",
        "code": _concept([_coding(SNOMED_SYSTEM, ALLERGY_SNOMED_CODE, allergy.description)],
                         allergy.description),
        "patient": _patient_ref(patient_id),
        "reaction": [{
            "manifestation": [_concept([_coding(SNOMED_SYSTEM, ALLERGY_SNOMED_CODE, "Allergic reaction")])],
            "severity": "moderate",
        }],
    }
    if encounter_id:
        ai["encounter"] = _encounter_ref(encounter_id)
    return ai


def from_fhir_allergy_intolerance(resource: Mapping[str, Any]) -> Allergy:
    status = _concept_code(resource.get("clinicalStatus"))
    return Allergy(
        description=_concept_text(resource.get("code")) or "Unknown allergy",
        active=status in ("", "active"),
    )


# ===================================================================
#                              PATIENT
# ===================================================================
def patient_to_domain(resource: Mapping[str, Any]) -> Patient:
    ident = _first(resource.get("identifier"))
    name = _first(resource.get("name"))
    addr = _first(resource.get("address"))
    birth = parse_datetime(resource.get("birthDate"))

    return Patient(
        identity_document=IdentityDocument(
            identification_type=_concept_code(ident.get("type")) or UNKNOWN,
            country=addr.get("country") or UNKNOWN,
            identification_value=ident.get("value") or resource.get("id") or UNKNOWN,
        ),
        date_of_birth=birth.date() if birth else date.today(),
        first_name=(name.get("given") or [None])[0] or UNKNOWN,
        last_name=name.get("family") or UNKNOWN,
        gender=resource.get("gender") or "unknown",
        patient_data=PatientData(
            contact_means=ContactMeans(
                cellular=_telecom(resource, "phone", "mobile"),
                email=_telecom(resource, "email"),
                phone=_telecom(resource, "phone", "home"),
            ),
            height=resource.get("height") or 0,
            weight=resource.get("weight") or 0,
            address=Address(
                neighborhood=addr.get("district") or "",
                street=" ".join(addr.get("line") or []),
                city=addr.get("city") or "",
                postal_code=addr.get("postalCode") or "",
                department=addr.get("state") or "",
            ),
        ),
    )


def gender_label(gender: Optional[str]) -> str:
    if not gender or gender == "unknown":
        return "-"
    return _GENDER_LABELS.get(gender, gender)


def _death_date(resource: Mapping[str, Any]) -> Optional[str]:
    dt = resource.get("deceasedDateTime")
    return dt.split("T")[0] if dt else None


def _fallback_name(resource: Mapping[str, Any]) -> str:
    name = _first(resource.get("name"))
    if name.get("text"):
        return name["text"]
    joined = f"{' '.join(name.get('given') or [])} {name.get('family') or ''}".strip()
    return joined or NO_NAME


def patient_to_row(resource: Mapping[str, Any]) -> PatientRow:
    try:
        p = patient_to_domain(resource)
        name, gender = f"{p.first_name} {p.last_name}", p.gender
    except (TypeError, ValueError, AttributeError, IndexError) as e:
        logger.error("Error converting patient %s: %s", resource.get("id"), e)
        name, gender = _fallback_name(resource), resource.get("gender")
    return PatientRow(
        id=resource.get("id") or "-",
        name=name,
        birth_date=resource.get("birthDate") or "-",
        gender=gender_label(gender),
        death_date=_death_date(resource),
    )


def _address_line(addr: Mapping[str, Any]) -> str:
    if not addr:
        return "-"
    parts = [", ".join(addr.get("line") or [])]
    parts += [addr.get(k) or "" for k in ("city", "state", "postalCode", "country")]
    return ", ".join(p for p in parts if p) or "-"


def patient_to_detail(resource: Mapping[str, Any]) -> PatientDetail:
    name = _first(resource.get("name"))
    if name.get("text"):
        display = name["text"]
    elif name.get("given") and name.get("family"):
        display = f"{' '.join(name['given'])} {name['family']}".strip()
    else:
        display = NO_NAME
    addr = _first(resource.get("address"))
    return PatientDetail(
        id=resource.get("id") or "-",
        name=display,
        birth_date=resource.get("birthDate") or "-",
        gender=gender_label(resource.get("gender")),
        death_date=_death_date(resource),
        phone=_telecom(resource, "phone", "home") or "-",
        mobile=_telecom(resource, "phone", "mobile") or "-",
        email=_telecom(resource, "email") or "-",
        address=_address_line(addr),
        district=addr.get("district") or "-",
        height=str(resource.get("height") or "-"),
        weight=str(resource.get("weight") or "-"),
    )


def patient_form_to_fhir(form: Mapping[str, str]) -> Dict[str, Any]:
    """New-patient form (already validated) -> FHIR Patient body."""
    id_code, id_display = _IDENTIFIER_TYPES.get(form.get("identification_type", ""), _DEFAULT_IDENTIFIER_TYPE)
    country = form.get("identification_country", "").strip()
    line = [f"{form.get('street', '').strip()} {form.get('door_number', '').strip()}"]
    if form.get("apartment_number", "").strip():
        line.append(f"Apto {form['apartment_number'].strip()}")

    return {
        "resourceType": "Patient",
        "active": True,
        "gender": form.get("gender") or "unknown",
        "identifier": [{
            "use": "usual",
            "type": _concept([_coding(IDENTIFIER_TYPE_SYSTEM, id_code, id_display)]),
            "system": f"{IDENTIFIER_OID_PREFIX}{country}",
            "value": form.get("identification_value", "").strip(),
        }],
        "name": [{
            "use": "official",
            "family": form.get("last_name", "").strip(),
            "given": [form.get("first_name", "").strip()],
        }],
        "telecom": [
            {"system": "phone", "value": form.get("phone", "").strip(), "use": "home"},
            {"system": "phone", "value": form.get("cellular", "").strip(), "use": "mobile"},
            {"system": "email", "value": form.get("email", "").strip(), "use": "home"},
        ],
        "address": [{
            "use": "home",
            "type": "physical",
            "line": line,
            "city": form.get("city", "").strip(),
            "district": form.get("neighborhood", "").strip(),
            "state": form.get("department", "").strip(),
            "postalCode": form.get("postal_code", "").strip(),
            "country": country,
        }],
        "birthDate": form.get("date_of_birth", ""),
        "height": to_number(form.get("height", "")),
        "weight": to_number(form.get("weight", "")),
    }
