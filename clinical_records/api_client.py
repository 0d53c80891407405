import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import requests

from clinical_records.config import BASE_URL, HEADERS_JSON, HEADERS_JSON_PATCH
from clinical_records.errors import ApiError

logger = logging.getLogger(__name__)

_session = requests.Session()
_session.headers.update({
    "Accept": "application/json",
    "Accept-Encoding": "gzip",
    "Connection": "keep-alive",
})


@dataclass
class ApiResponse:
    data: Any
    status: int
    message: Optional[str] = None
    count: Optional[int] = None


def _url(path: str) -> str:
    return f"{BASE_URL}/{path.strip('/')}"


# ======================= basic HTTP wrapper =======================
def _raise_with_detail(resp: requests.Response):
    try:
        detail = resp.text
    except Exception:
        detail = "<no body>"
    logger.error("API request failed: %s %s %s", resp.status_code, resp.reason, detail)
    raise ApiError(resp.status_code, detail)


def _request(method: str, path: str, body: Any = None,
             headers: Optional[Dict[str, str]] = None) -> ApiResponse:
    """Single attempt, no timeout. Unwraps the {success, data, count, message} envelope."""
    url = _url(path)
    logger.debug("API request %s %s", method, url)
    try:
        r = _session.request(method, url,
                             data=json.dumps(body) if body is not None else None,
                             headers=headers or HEADERS_JSON)
    except requests.RequestException as e:
        logger.error("API request to %s failed: %s", url, e)
        raise ApiError(None, str(e)) from e
    if not r.ok:
        _raise_with_detail(r)

    try:
        payload = r.json() if r.content else None
    except ValueError as e:
        logger.error("API response from %s is not JSON: %s", url, e)
        raise ApiError(r.status_code, r.text) from e
    logger.debug("API response for %s: %s", path, payload)
    if isinstance(payload, dict) and "data" in payload and "success" in payload:
        return ApiResponse(data=payload.get("data"), status=r.status_code,
                           message=payload.get("message"), count=payload.get("count"))
    return ApiResponse(data=payload, status=r.status_code)


def get(path: str) -> ApiResponse:
    return _request("GET", path)


def post(path: str, body: Dict[str, Any]) -> ApiResponse:
    return _request("POST", path, body)


def patch(path: str, body: Any, headers: Optional[Dict[str, str]] = None) -> ApiResponse:
    return _request("PATCH", path, body, headers=headers)


def json_patch_add(updates: Dict[str, Any]) -> List[Dict[str, Any]]:
    return [{"op": "add", "path": f"/{k}", "value": v} for k, v in updates.items()]


# ============================ patients ============================
def get_patients() -> ApiResponse:
    return get("patients")


def get_patient_by_id(patient_id: str) -> ApiResponse:
    return get(f"patients/{patient_id}")


def create_patient(patient: Dict[str, Any]) -> ApiResponse:
    return post("patients", patient)


def update_patient(patient_id: str, updates: Dict[str, Any]) -> ApiResponse:
    return patch(f"patients/{patient_id}", json_patch_add(updates), headers=HEADERS_JSON_PATCH)


def mark_patient_as_deceased(patient_id: str, deceased_datetime: str) -> ApiResponse:
    # plain JSON merge body, not JSON-Patch
    return patch(f"patients/{patient_id}", {"deceasedDateTime": deceased_datetime})


# ================== encounters and child resources ==================
def get_encounters_by_patient(patient_id: str) -> ApiResponse:
    return get(f"encounters/patient/{patient_id}")


def create_encounter(encounter: Dict[str, Any]) -> ApiResponse:
    return post("encounters", encounter)


def get_observations_by_patient(patient_id: str) -> ApiResponse:
    return get(f"observations/patient/{patient_id}")


def create_observation(observation: Dict[str, Any]) -> ApiResponse:
    return post("observations", observation)


def get_medication_requests_by_patient(patient_id: str) -> ApiResponse:
    return get(f"medication-requests/patient/{patient_id}")


def create_medication_request(request: Dict[str, Any]) -> ApiResponse:
    return post("medication-requests", request)


def get_conditions_by_patient(patient_id: str) -> ApiResponse:
    return get(f"conditions/patient/{patient_id}")


def create_condition(condition: Dict[str, Any]) -> ApiResponse:
    return post("conditions", condition)


def get_allergy_intolerances_by_patient(patient_id: str) -> ApiResponse:
    return get(f"allergy-intolerances/patient/{patient_id}")


def create_allergy_intolerance(allergy: Dict[str, Any]) -> ApiResponse:
    return post("allergy-intolerances", allergy)


def health_check() -> ApiResponse:
    return get("health")
