"""Client-side checks run before anything is sent to the backend."""
from typing import Any, Dict, Mapping, Sequence

import jsonschema

from clinical_records.converters import to_number

EMAIL_PATTERN = r"^[^\s@]+@[^\s@]+\.[^\s@]+$"
PHONE_PATTERN = r"^[\d\s\-+()]+$"
NOT_BLANK = r"\S"

# field -> message when blank
REQUIRED_PATIENT_FIELDS = {
    "first_name": "El nombre es obligatorio",
    "last_name": "El apellido es obligatorio",
    "date_of_birth": "La fecha de nacimiento es obligatoria",
    "gender": "El género es obligatorio",
    "identification_type": "El tipo de identificación es obligatorio",
    "identification_country": "El país de identificación es obligatorio",
    "identification_value": "El número de identificación es obligatorio",
    "email": "El email es obligatorio",
    "phone": "El teléfono es obligatorio",
    "cellular": "El celular es obligatorio",
    "neighborhood": "El barrio es obligatorio",
    "street": "La calle es obligatoria",
    "city": "La ciudad es obligatoria",
    "postal_code": "El código postal es obligatorio",
    "department": "El departamento es obligatorio",
    "door_number": "El número de puerta es obligatorio",
    "height": "La altura es obligatoria",
    "weight": "El peso es obligatorio",
}
# field -> message when present but malformed
FORMAT_MESSAGES = {
    "email": "El formato del email no es válido",
    "phone": "El formato del teléfono no es válido",
    "cellular": "El formato del celular no es válido",
    "height": "La altura debe ser un número mayor a 0",
    "weight": "El peso debe ser un número mayor a 0",
}
NUMERIC_FIELDS = ("height", "weight")
PATIENT_FORM_FIELDS = list(REQUIRED_PATIENT_FIELDS) + ["apartment_number"]

_TEXT = {"type": "string", "pattern": NOT_BLANK}
_POSITIVE = {"type": "number", "exclusiveMinimum": 0}

PATIENT_FORM_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        **{name: _TEXT for name in REQUIRED_PATIENT_FIELDS if name not in NUMERIC_FIELDS},
        "email": {"type": "string", "allOf": [{"pattern": NOT_BLANK}, {"pattern": EMAIL_PATTERN}]},
        "phone": {"type": "string", "allOf": [{"pattern": NOT_BLANK}, {"pattern": PHONE_PATTERN}]},
        "cellular": {"type": "string", "allOf": [{"pattern": NOT_BLANK}, {"pattern": PHONE_PATTERN}]},
        "height": _POSITIVE,
        "weight": _POSITIVE,
    },
}

ENCOUNTER_TYPE_REQUIRED = "El tipo de encuentro es requerido"
START_DATE_REQUIRED = "La fecha de inicio es requerida"
SECTION_REQUIRED = ("Debe completar al menos una sección "
                    "(Observaciones, Medicamentos, Diagnósticos o Alergias)")


def _form_document(form: Mapping[str, str]) -> Dict[str, Any]:
    # blank numbers stay "" so the type check reports them as missing
    doc: Dict[str, Any] = {name: form.get(name) or "" for name in REQUIRED_PATIENT_FIELDS}
    for name in NUMERIC_FIELDS:
        if doc[name].strip():
            doc[name] = to_number(doc[name])
    return doc


def _is_blank_error(error: jsonschema.ValidationError) -> bool:
    return error.validator == "type" or (error.validator == "pattern" and error.validator_value == NOT_BLANK)


def validate_patient_form(form: Mapping[str, str]) -> Dict[str, str]:
    """Returns {field: message}; empty means the form can be submitted."""
    validator = jsonschema.Draft7Validator(PATIENT_FORM_SCHEMA)
    errors: Dict[str, str] = {}
    for error in validator.iter_errors(_form_document(form)):
        if not error.path: continue
        name = error.path[0]
        # a blank field reports "required", never "malformed"
        if _is_blank_error(error):
            errors[name] = REQUIRED_PATIENT_FIELDS[name]
        else:
            errors.setdefault(name, FORMAT_MESSAGES[name])
    return errors


def validate_encounter(encounter_type: Any, start_date: Any, sections: Sequence[Sequence[Any]]) -> list:
    errors = []
    if not encounter_type:
        errors.append(ENCOUNTER_TYPE_REQUIRED)
    if not start_date:
        errors.append(START_DATE_REQUIRED)
    if not any(sections):
        errors.append(SECTION_REQUIRED)
    return errors


def is_encounter_ready(encounter_type: Any, start_date: Any, sections: Sequence[Sequence[Any]]) -> bool:
    return not validate_encounter(encounter_type, start_date, sections)
