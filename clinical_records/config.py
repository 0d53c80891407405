import os
from dotenv import load_dotenv

load_dotenv()

BASE_URL = os.getenv("CLINIC_API_BASE", "http://localhost:3000").rstrip("/")

HEADERS_JSON = {"Accept": "application/json", "Content-Type": "application/json"}
HEADERS_JSON_PATCH = {"Accept": "application/json", "Content-Type": "application/json-patch+json"}

# NLM UTS code search, used for LOINC / SNOMED CT autocomplete
TERMINOLOGY_BASE = os.getenv("UTS_SEARCH_BASE", "https://uts-ws.nlm.nih.gov/rest/search/current").rstrip("/")
UTS_API_KEY = os.getenv("UTS_API_KEY", "")
LOINC_SABS = "LNC-ES-AR"
SNOMED_SABS = "SCTSPA"

SEARCH_DEBOUNCE_MS = int(os.getenv("SEARCH_DEBOUNCE_MS", "500"))
SEARCH_MIN_LENGTH = 2
SEARCH_MAX_RESULTS = 10

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
