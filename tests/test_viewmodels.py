"""Tests for the view-models behind the windows."""
from datetime import datetime
from unittest.mock import Mock, patch

from clinical_records import backend
from clinical_records.api_client import ApiResponse
from clinical_records.domain import Allergy, Observation, PatientRow
from clinical_records.errors import ApiError
from clinical_records.validation import SECTION_REQUIRED, START_DATE_REQUIRED
from clinical_records.viewmodels import (
    PATIENT_DELETE_UNSUPPORTED, DoctorsViewModel, EncounterFormModel, OrganizationsViewModel,
    PatientsViewModel,
)


# ============================================================================
# Encounter form
# ============================================================================

def test_submit_blocked_without_sections():
    form = EncounterFormModel("p1")
    form.start_date = "2024-01-01T10:00"
    submitter = Mock()

    assert form.submit(submitter) is False
    submitter.assert_not_called()
    assert form.errors == [SECTION_REQUIRED]
    assert not form.is_ready()


def test_submit_blocked_without_start_date():
    form = EncounterFormModel("p1")
    form.add_allergy("Polen")
    submitter = Mock()

    assert form.submit(submitter) is False
    submitter.assert_not_called()
    assert START_DATE_REQUIRED in form.errors


def test_partial_observation_is_not_added():
    form = EncounterFormModel("p1")
    assert form.add_observation("8867-4", "", "bpm", "72") is False
    assert form.observations == []
    assert form.observation_names == []


def test_add_and_remove_sections():
    form = EncounterFormModel("p1")
    form.add_observation("8867-4", "auscultation", "bpm", "72", "Frecuencia cardíaca")
    form.add_observation("8310-5", "oral", "Cel", "37")
    form.add_diagnosis("Hipertensión", "38341003", "active")
    form.add_allergy("Polen", active=False)

    form.remove_observation(0)

    assert form.observations == [Observation("8310-5", "oral", "Cel", "37")]
    assert form.observation_names == [""]
    assert form.allergies == [Allergy("Polen", False)]
    assert len(form.diagnoses) == 1


def test_build_encounter_parses_form_dates():
    form = EncounterFormModel("p1")
    form.encounter_type = "Emergency"
    form.start_date = "2024-01-01T10:00"
    form.end_date = "2024-01-01T11:30"
    form.add_allergy("Polen")

    enc = form.build_encounter()

    assert enc.encounter_type == "Emergency"
    assert enc.start_date == datetime(2024, 1, 1, 10, 0)
    assert enc.end_date == datetime(2024, 1, 1, 11, 30)
    assert enc.allergies == [Allergy("Polen")]


def test_successful_submit():
    form = EncounterFormModel("p1")
    form.start_date = "2024-01-01T10:00"
    form.add_medication("387517004", "oral", "mg", "500", "Paracetamol")
    submitter = Mock(return_value="e1")

    assert form.submit(submitter) is True
    assert form.submit_success
    assert form.encounter_id == "e1"
    assert not form.is_submitting

    patient_id, encounter, obs_names, med_names, diag_names = submitter.call_args[0]
    assert patient_id == "p1"
    assert len(encounter.medications) == 1
    assert med_names == ["Paracetamol"]


def test_failed_submit_keeps_error():
    form = EncounterFormModel("p1")
    form.start_date = "2024-01-01T10:00"
    form.add_allergy("Polen")

    assert form.submit(Mock(side_effect=ApiError(500, "boom"))) is False
    assert form.submit_error == "HTTP error! status: 500 - boom"
    assert not form.submit_success
    assert not form.is_submitting


# ============================================================================
# Patients
# ============================================================================

def test_patients_load():
    rows = [PatientRow("p1", "Juan Pérez", "1985-06-15", "Masculino")]
    vm = PatientsViewModel(service=Mock(patient_rows=Mock(return_value=rows)))

    vm.load()

    assert vm.entities == rows
    assert vm.error is None
    assert not vm.is_loading


def test_patients_load_error_is_kept_not_raised():
    vm = PatientsViewModel(service=Mock(patient_rows=Mock(side_effect=ApiError(None, "refused"))))

    vm.load()

    assert vm.entities == []
    assert "refused" in vm.error
    assert not vm.is_loading


def test_patients_add_reloads_only_on_success():
    service = Mock()
    service.patient_rows.return_value = []
    vm = PatientsViewModel(service=service)

    service.patient_insert.return_value = {"email": "El email es obligatorio"}
    assert vm.add({}) == {"email": "El email es obligatorio"}
    service.patient_rows.assert_not_called()

    service.patient_insert.return_value = {}
    assert vm.add({"first_name": "Ana"}) == {}
    service.patient_rows.assert_called_once()


def test_patients_delete_keeps_error():
    service = Mock()
    vm = PatientsViewModel(service=service)

    assert vm.delete("p1") is False
    assert vm.error == PATIENT_DELETE_UNSUPPORTED
    assert service.mock_calls == []


def test_patients_add_backend_error_is_kept_not_raised():
    vm = PatientsViewModel(service=Mock(patient_insert=Mock(side_effect=ApiError(500, "boom"))))

    assert vm.add({"first_name": "Ana"}) == {}
    assert "boom" in vm.error
    assert not vm.is_loading


def test_patients_update_error_is_kept_not_raised():
    service = Mock(patient_update=Mock(side_effect=ApiError(500, "boom")))
    vm = PatientsViewModel(service=service)

    assert vm.update("p1", {"gender": "female"}) is False
    assert "boom" in vm.error
    assert not vm.is_loading
    service.patient_rows.assert_not_called()


def test_patients_mark_deceased_error_is_kept_not_raised():
    service = Mock(mark_deceased=Mock(side_effect=ValueError("deceased date/time is required")))
    vm = PatientsViewModel(service=service)

    assert vm.mark_deceased("p1", "") is False
    assert vm.error == "deceased date/time is required"
    assert not vm.is_loading


def test_patients_update_success_clears_error():
    service = Mock()
    service.patient_rows.return_value = []
    vm = PatientsViewModel(service=service)
    vm.error = "old"

    assert vm.update("p1", {"gender": "female"}) is True
    assert vm.error is None
    service.patient_rows.assert_called_once()


def test_select_and_clear():
    vm = PatientsViewModel(service=Mock())
    row = PatientRow("p1", "Juan", "-", "-")
    vm.select(row)
    assert vm.selected is row
    vm.clear_selection()
    assert vm.selected is None


# ============================================================================
# Doctors / organizations (in memory)
# ============================================================================

def test_doctors_crud():
    vm = DoctorsViewModel()
    vm.load()
    assert [d.name for d in vm.entities] == ["Dr. Carlos López", "Dra. Ana Martínez"]

    added = vm.add(name="Dr. Pablo Ruiz", specialty="Neurología")
    assert vm.find(added.id) == added

    vm.select(added)
    vm.update(added.id, specialty="Neurocirugía")
    assert vm.find(added.id).specialty == "Neurocirugía"
    assert vm.selected.specialty == "Neurocirugía"

    vm.delete(added.id)
    assert vm.find(added.id) is None
    assert vm.selected is None
    assert len(vm.entities) == 2


def test_update_replaces_list():
    vm = DoctorsViewModel()
    vm.load()
    before = vm.entities
    vm.update("1", phone="+000")
    assert vm.entities is not before
    assert before[0].phone == "+1234567890"


def test_organizations_seed_and_add_area():
    vm = OrganizationsViewModel()
    vm.load()
    madrid = vm.find("1")
    assert [a.name for a in madrid.areas] == ["Urgencias", "Radiología", "Admisión"]
    assert madrid.caregivers[0].area.name == "Urgencias"

    barcelona = vm.find("2")
    vm.add_area("2", madrid.areas[1])
    assert [a.name for a in vm.find("2").areas] == ["Pediatría", "Secretaría", "Radiología"]
    assert len(barcelona.areas) == 2


def test_emergency_example_end_to_end():
    form = EncounterFormModel("p1")
    form.encounter_type = "Emergency"
    form.start_date = "2024-01-01T10:00"
    assert form.add_observation("2345-7", "Blood test", "mg/dL", "95")

    with patch.object(backend, "api") as api:
        api.create_encounter.return_value = ApiResponse(data={"id": "enc-42"}, status=201)
        api.create_observation.return_value = ApiResponse(data={"id": "obs-1"}, status=201)
        assert form.submit() is True

    assert form.encounter_id == "enc-42"
    assert api.create_encounter.call_args[0][0]["class"]["code"] == "EMER"
    api.create_observation.assert_called_once()
    obs = api.create_observation.call_args[0][0]
    assert obs["subject"]["reference"] == "Patient/p1"
    assert obs["encounter"]["reference"] == "Encounter/enc-42"
    assert obs["valueQuantity"]["value"] == 95.0
