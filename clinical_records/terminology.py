"""
LOINC / SNOMED CT autocomplete against the NLM UTS search endpoint.

``search_codes`` is the raw lookup. ``Debouncer`` and ``CodeSearch`` hold the
per-field autocomplete state: every keystroke cancels the pending timer and
schedules a new one, so only the last keystroke inside the idle window hits
the network. There is no sequence guard, a slow answer to a superseded
search can still land after a newer one.
"""
import logging
from dataclasses import dataclass
from typing import Any, Callable, List, Optional

import requests

from clinical_records.background import run_inline
from clinical_records.config import (
    LOINC_SABS, SEARCH_DEBOUNCE_MS, SEARCH_MAX_RESULTS, SEARCH_MIN_LENGTH, SNOMED_SABS,
    TERMINOLOGY_BASE, UTS_API_KEY,
)
from clinical_records.errors import TerminologyError

logger = logging.getLogger(__name__)

_session = requests.Session()
_session.headers.update({"Accept": "application/json"})


@dataclass(frozen=True)
class CodeResult:
    code: str
    display_name: str
    short_name: str


def _loinc_short(name: str) -> str:
    return name.split(":")[0]


def _snomed_short(name: str) -> str:
    return name.split("(")[0].strip()


def search_codes(term: str, sabs: str, short_name: Callable[[str], str] = _snomed_short) -> List[CodeResult]:
    term = (term or "").strip()
    if len(term) < SEARCH_MIN_LENGTH:
        return []
    params = {"string": term, "sabs": sabs, "returnIdType": "code", "apiKey": UTS_API_KEY}
    r = _session.get(TERMINOLOGY_BASE, params=params)
    if not r.ok:
        raise TerminologyError(r.status_code, r.text)
    results = ((r.json() or {}).get("result") or {}).get("results") or []
    return [CodeResult(code=item.get("ui", ""), display_name=item.get("name", ""),
                       short_name=short_name(item.get("name", "")))
            for item in results]


def search_loinc(term: str) -> List[CodeResult]:
    return search_codes(term, LOINC_SABS, _loinc_short)


def search_snomed(term: str) -> List[CodeResult]:
    return search_codes(term, SNOMED_SABS, _snomed_short)


class Debouncer:
    """
    Only the last call inside ``delay_ms`` fires.

    ``scheduler`` needs ``after(ms, fn) -> handle`` and ``after_cancel(handle)``;
    any Tk widget qualifies.
    """

    def __init__(self, scheduler, delay_ms: int = SEARCH_DEBOUNCE_MS):
        self.scheduler = scheduler
        self.delay_ms = delay_ms
        self._pending = None

    @property
    def pending(self) -> bool:
        return self._pending is not None

    def call(self, fn: Callable[..., Any], *args) -> None:
        self.cancel()

        def fire():
            self._pending = None
            fn(*args)

        self._pending = self.scheduler.after(self.delay_ms, fire)

    def cancel(self) -> None:
        if self._pending is not None:
            self.scheduler.after_cancel(self._pending)
            self._pending = None


class CodeSearch:
    def __init__(self, search_fn: Callable[[str], List[CodeResult]], scheduler,
                 delay_ms: int = SEARCH_DEBOUNCE_MS, max_results: int = SEARCH_MAX_RESULTS,
                 runner=run_inline, on_change: Optional[Callable[[], None]] = None,
                 error_message: str = "Error al buscar códigos"):
        self.search_fn = search_fn
        self.max_results = max_results
        self.runner = runner
        self.on_change = on_change
        self.error_message = error_message
        self._debouncer = Debouncer(scheduler, delay_ms)

        self.results: List[CodeResult] = []
        self.is_searching = False
        self.show_results = False
        self.error: Optional[str] = None

    def _changed(self):
        if self.on_change:
            self.on_change()

    def on_input(self, text: str) -> None:
        if len(text) < SEARCH_MIN_LENGTH:
            self._debouncer.cancel()
            self.results = []
            self.show_results = False
            self.is_searching = False
            self._changed()
            return
        self.is_searching = True
        self.error = None
        self._debouncer.call(self._search, text)
        self._changed()

    def _search(self, term: str) -> None:
        self.runner(lambda: self.search_fn(term), self._done, self._failed)

    def _done(self, results: List[CodeResult]) -> None:
        self.results = list(results)[:self.max_results]
        self.show_results = True
        self.is_searching = False
        self._changed()

    def _failed(self, exc: Exception) -> None:
        logger.error("code search failed: %s", exc)
        self.error = self.error_message
        self.results = []
        self.is_searching = False
        self._changed()

    def select(self, result: CodeResult) -> tuple:
        """Returns (code, short_name) to store in the draft."""
        self._debouncer.cancel()
        self.is_searching = False
        self.show_results = False
        self.results = []
        self._changed()
        return result.code, result.short_name

    def dismiss(self) -> None:
        self._debouncer.cancel()
        self.is_searching = False
        self.show_results = False
        self._changed()
