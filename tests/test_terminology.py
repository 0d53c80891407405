"""Tests for LOINC / SNOMED CT code search and the debounced autocomplete."""
from unittest.mock import Mock, patch

import pytest

from clinical_records import terminology
from clinical_records.config import LOINC_SABS, SNOMED_SABS
from clinical_records.errors import TerminologyError
from clinical_records.terminology import CodeResult, CodeSearch, Debouncer


class FakeScheduler:
    """Stands in for a Tk widget: after() queues, flush() fires whatever is still pending."""

    def __init__(self):
        self.pending = {}
        self._next = 0

    def after(self, ms, fn):
        self._next += 1
        self.pending[self._next] = fn
        return self._next

    def after_cancel(self, handle):
        self.pending.pop(handle, None)

    def flush(self):
        fns, self.pending = list(self.pending.values()), {}
        for fn in fns:
            fn()


def _uts_response(results, status=200):
    resp = Mock()
    resp.ok = status == 200
    resp.status_code = status
    resp.text = "error"
    resp.json.return_value = {"result": {"results": results}}
    return resp


# ============================================================================
# search_codes
# ============================================================================

@pytest.fixture
def session():
    with patch.object(terminology, "_session") as s:
        yield s


def test_search_loinc_params_and_short_name(session):
    session.get.return_value = _uts_response([
        {"ui": "8867-4", "name": "Frecuencia cardíaca:NRat:Pt:XXX:Qn"},
    ])
    results = terminology.search_loinc(" frecuencia ")

    assert results == [CodeResult("8867-4", "Frecuencia cardíaca:NRat:Pt:XXX:Qn", "Frecuencia cardíaca")]
    params = session.get.call_args[1]["params"]
    assert params["string"] == "frecuencia"
    assert params["sabs"] == LOINC_SABS
    assert params["returnIdType"] == "code"
    assert "apiKey" in params


def test_search_snomed_short_name(session):
    session.get.return_value = _uts_response([
        {"ui": "38341003", "name": "hipertensión arterial (trastorno)"},
    ])
    results = terminology.search_snomed("hiper")

    assert results[0].short_name == "hipertensión arterial"
    assert session.get.call_args[1]["params"]["sabs"] == SNOMED_SABS


def test_short_term_makes_no_request(session):
    assert terminology.search_snomed(" a ") == []
    session.get.assert_not_called()


def test_search_error_status(session):
    session.get.return_value = _uts_response([], status=401)
    with pytest.raises(TerminologyError) as exc:
        terminology.search_loinc("glucosa")
    assert exc.value.status == 401


def test_search_without_results(session):
    resp = _uts_response([])
    resp.json.return_value = {}
    session.get.return_value = resp
    assert terminology.search_loinc("zzzz") == []


# ============================================================================
# Debouncer / CodeSearch
# ============================================================================

def test_debouncer_fires_last_call_only():
    sched = FakeScheduler()
    calls = []
    d = Debouncer(sched, 500)
    d.call(calls.append, "a")
    d.call(calls.append, "ab")
    assert d.pending

    sched.flush()
    assert calls == ["ab"]
    assert not d.pending


def test_single_character_never_searches():
    sched = FakeScheduler()
    search_fn = Mock(return_value=[])
    cs = CodeSearch(search_fn, sched)

    cs.on_input("g")
    sched.flush()

    search_fn.assert_not_called()
    assert cs.results == []
    assert not cs.show_results


def test_rapid_typing_issues_one_search():
    sched = FakeScheduler()
    search_fn = Mock(return_value=[CodeResult("2339-0", "Glucosa:MCnc:Pt:Bld:Qn", "Glucosa")])
    cs = CodeSearch(search_fn, sched)

    for text in ("gl", "glu", "gluc", "gluco"):
        cs.on_input(text)
    assert cs.is_searching
    sched.flush()

    search_fn.assert_called_once_with("gluco")
    assert cs.show_results
    assert not cs.is_searching
    assert [r.code for r in cs.results] == ["2339-0"]


def test_results_are_capped():
    sched = FakeScheduler()
    many = [CodeResult(str(i), f"n{i}", f"n{i}") for i in range(25)]
    cs = CodeSearch(Mock(return_value=many), sched, max_results=10)

    cs.on_input("abc")
    sched.flush()

    assert len(cs.results) == 10


def test_shortening_input_cancels_pending_search():
    sched = FakeScheduler()
    search_fn = Mock(return_value=[])
    cs = CodeSearch(search_fn, sched)

    cs.on_input("gl")
    cs.on_input("g")
    sched.flush()

    search_fn.assert_not_called()
    assert not cs.is_searching


def test_search_failure_sets_error():
    sched = FakeScheduler()
    cs = CodeSearch(Mock(side_effect=TerminologyError(500, "down")), sched,
                    error_message="Error al buscar códigos LOINC")

    cs.on_input("glu")
    sched.flush()

    assert cs.error == "Error al buscar códigos LOINC"
    assert cs.results == []
    assert not cs.is_searching


def test_select_returns_code_and_short_name():
    sched = FakeScheduler()
    on_change = Mock()
    cs = CodeSearch(Mock(return_value=[]), sched, on_change=on_change)
    cs.on_input("glu")

    picked = cs.select(CodeResult("2339-0", "Glucosa:MCnc:Pt:Bld:Qn", "Glucosa"))

    assert picked == ("2339-0", "Glucosa")
    assert not cs.show_results
    assert sched.pending == {}
    assert on_change.called
