"""Tests for client-side form validation."""
import pytest

from clinical_records.validation import (
    ENCOUNTER_TYPE_REQUIRED, SECTION_REQUIRED, START_DATE_REQUIRED, is_encounter_ready,
    validate_encounter, validate_patient_form,
)


def test_valid_patient_form(patient_form):
    assert validate_patient_form(patient_form) == {}


def test_apartment_number_is_optional(patient_form):
    patient_form["apartment_number"] = ""
    assert validate_patient_form(patient_form) == {}


def test_empty_form_reports_every_required_field():
    errors = validate_patient_form({})
    assert errors["first_name"] == "El nombre es obligatorio"
    assert errors["weight"] == "El peso es obligatorio"
    assert "apartment_number" not in errors


def test_whitespace_only_counts_as_missing(patient_form):
    patient_form["city"] = "   "
    assert list(validate_patient_form(patient_form)) == ["city"]


@pytest.mark.parametrize("email", ["ana", "ana@", "ana@example", "a b@example.com"])
def test_invalid_email(patient_form, email):
    patient_form["email"] = email
    assert validate_patient_form(patient_form)["email"] == "El formato del email no es válido"


@pytest.mark.parametrize("field", ["phone", "cellular"])
def test_invalid_phone(patient_form, field):
    patient_form[field] = "099-abc"
    assert "no es válido" in validate_patient_form(patient_form)[field]


@pytest.mark.parametrize("value", ["0", "-3", "alto"])
def test_height_must_be_positive_number(patient_form, value):
    patient_form["height"] = value
    assert validate_patient_form(patient_form)["height"] == "La altura debe ser un número mayor a 0"


def test_encounter_needs_type_date_and_a_section():
    errors = validate_encounter("", "", [[], [], [], []])
    assert errors == [ENCOUNTER_TYPE_REQUIRED, START_DATE_REQUIRED, SECTION_REQUIRED]


def test_encounter_with_one_section_is_ready():
    assert validate_encounter("Emergency", "2024-01-01T10:00", [["obs"], [], [], []]) == []
    assert is_encounter_ready("Emergency", "2024-01-01T10:00", [[], [], [], ["allergy"]])
    assert not is_encounter_ready("Emergency", "2024-01-01T10:00", [[], [], [], []])


@pytest.mark.parametrize("field", ["height", "weight"])
@pytest.mark.parametrize("value", ["nan", "inf", "Infinity", "1e999"])
def test_non_finite_numbers_are_rejected(patient_form, field, value):
    patient_form[field] = value
    assert field in validate_patient_form(patient_form)


def test_height_with_unit_reads_leading_number(patient_form):
    patient_form["height"] = "95 cm"
    assert validate_patient_form(patient_form) == {}


def test_blank_email_reports_required_not_format(patient_form):
    patient_form["email"] = ""
    assert validate_patient_form(patient_form) == {"email": "El email es obligatorio"}


def test_blank_height_reports_required(patient_form):
    patient_form["height"] = " "
    assert validate_patient_form(patient_form) == {"height": "La altura es obligatoria"}


def test_form_schema_collects_every_error(patient_form):
    patient_form.update(email="ana", phone="abc", weight="0")
    assert set(validate_patient_form(patient_form)) == {"email", "phone", "weight"}
