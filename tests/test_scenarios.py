from dataclasses import replace

import httpx
import pytest

from harness.config import DictConfigSource, HarnessConfig
from harness.reporting import EventKind, InMemoryReportSink
from harness.scenario_runner import ScenarioRunner
from harness.scenarios import (
    SCENARIO_REGISTRY,
    AbstractScenario,
    get_scenarios,
    get_suites,
    validate_scenario_names,
)
from harness.scenarios.orders import (
    EXPECTED_ORDERS_CREATED,
    MISSING_FIELD_SCENARIOS,
    MISSING_FIELDS,
    InvalidReferenceDataScenario,
    PastDateScenario,
    StandingOrderValidScenario,
)

from conftest import BASE_URI, TEST_EMAIL, TODAY, FakeOrderApi


def _runner(config, sink, api=None, **kwargs):
    api = api or FakeOrderApi()
    return ScenarioRunner(config, sink, transport=httpx.MockTransport(api), seed=42, clock=lambda: TODAY, **kwargs)


def _events(sink, result, kind=None):
    return [e for e in sink.events() if e.context_id == result.context_id and (kind is None or e.kind == kind)]


class CrashingScenario(AbstractScenario):
    @property
    def name(self):
        return "crashing"

    def run(self, ctx):
        ctx.engine.expect(True, "first check")
        raise RuntimeError("kaboom")


class SilentScenario(AbstractScenario):
    @property
    def name(self):
        return "silent"

    def run(self, ctx):
        ctx.info("nothing to check")


# ==================== Order scenarios ====================

def test_standing_order_happy_path(config, sink):
    result = _runner(config, sink).run_one(StandingOrderValidScenario())
    assert result.passed, [o.detail for o in result.outcomes if not o.passed]
    names = [o.rule_name for o in result.outcomes]
    assert "status_in_201" in names
    assert "equals:data.orders[0].order_type" in names
    passes = [e.message for e in _events(sink, result, EventKind.PASS)]
    assert f"✓ {EXPECTED_ORDERS_CREATED} orders created" in passes
    assert "✓ Order type is MLX" in passes


def test_past_date_is_rejected_and_not_created(config, sink):
    result = _runner(config, sink).run_one(PastDateScenario())
    assert result.passed
    by_name = {o.rule_name: o for o in result.outcomes}
    assert by_name["past_date_rejection"].passed
    assert by_name["expect"].passed
    assert by_name["past_date_rejection"].actual["status"] == 422


def test_past_date_accepted_by_api_fails_the_scenario(config, sink):
    api = FakeOrderApi(accept_past_dates=True)
    result = _runner(config, sink, api).run_one(PastDateScenario())
    assert not result.passed
    assert result.error is None
    fails = [e.message for e in _events(sink, result, EventKind.FAIL)]
    assert any(m.startswith("✗ Order not created") for m in fails)
    created = [m for m in fails if m.startswith("Order ORD-")]
    assert len(created) == EXPECTED_ORDERS_CREATED


@pytest.mark.parametrize("name", sorted(MISSING_FIELD_SCENARIOS))
def test_missing_field_family(config, sink, name):
    result = _runner(config, sink).run_one(SCENARIO_REGISTRY[name]())
    assert result.passed, result.to_dict()


# ==================== Whole registry ====================

def test_every_registered_scenario_passes_against_the_fake_api(config, sink):
    summary = _runner(config, sink).run(get_scenarios())
    assert summary.total == len(SCENARIO_REGISTRY)
    assert summary.ok, [(r.name, r.error, r.failed_checks) for r in summary.failures()]


def test_parallel_run_keeps_input_order_and_isolates_contexts(config, sink):
    scenarios = get_scenarios(["login", "orders"])
    summary = _runner(replace(config, max_workers=4), sink).run(scenarios)
    assert [r.name for r in summary.results] == [s.name for s in scenarios]
    assert summary.ok
    assert len({r.context_id for r in summary.results}) == len(scenarios)
    for result in summary.results:
        events = _events(sink, result)
        assert events[0].kind == EventKind.START
        assert events[-1].kind == EventKind.FINISH
        assert all(e.scenario == result.name for e in events)


# ==================== Abort handling ====================

def test_crash_becomes_failed_result(config, sink):
    result = _runner(config, sink).run_one(CrashingScenario())
    assert not result.passed
    assert result.error == "RuntimeError: kaboom"
    assert len(result.outcomes) == 1
    assert any("kaboom" in e.message for e in _events(sink, result, EventKind.FAIL))


def test_scenario_without_checks_fails(config, sink):
    result = _runner(config, sink).run_one(SilentScenario())
    assert not result.passed
    assert "No checks were recorded" in [e.message for e in _events(sink, result, EventKind.FAIL)]


def test_missing_credentials_abort_with_configuration_error(sink):
    config = HarnessConfig.from_source(DictConfigSource({"base_uri": BASE_URI}))
    result = _runner(config, sink).run_one(StandingOrderValidScenario())
    assert not result.passed
    assert result.error_kind == "CONFIGURATION"


def test_rejected_login_aborts_authenticated_scenario(sink):
    config = HarnessConfig.from_source(DictConfigSource({
        "base_uri": BASE_URI, "test_email": TEST_EMAIL, "test_password": "wrong",
    }))
    result = _runner(config, sink).run_one(StandingOrderValidScenario())
    assert not result.passed
    assert result.error.startswith("AuthenticationFailed")
    assert result.error_kind == "VALIDATION"


def test_run_summary_to_dict(config, sink):
    summary = _runner(config, sink).run([PastDateScenario(), SilentScenario()])
    data = summary.to_dict()
    assert (data["total"], data["passed"], data["failed"]) == (2, 1, 1)
    assert data["results"][1]["name"] == "silent"
    assert summary.failures()[0].name == "silent"


# ==================== Registry ====================

def test_missing_field_registry_covers_every_field():
    assert len(MISSING_FIELD_SCENARIOS) == len(MISSING_FIELDS)
    for name, cls in MISSING_FIELD_SCENARIOS.items():
        assert cls().name == name
        assert SCENARIO_REGISTRY[name] is cls


def test_suites():
    suites = get_suites()
    assert set(suites) == {"login", "user", "orders"}
    assert "user_details_flow" in suites["user"]


def test_validate_scenario_names_expands_suites_and_dedupes():
    valid, invalid = validate_scenario_names(["order_past_date", "user", "bogus", "order_past_date"])
    assert valid == ["order_past_date", "user_details_flow"]
    assert invalid == ["bogus"]


def test_get_scenarios_rejects_unknown_names():
    with pytest.raises(KeyError):
        get_scenarios(["login_valid", "nope"])
    assert [s.name for s in get_scenarios(["login_valid"])] == ["login_valid"]


def test_reference_data_scenario_requires_build_order():
    class Unbuilt(InvalidReferenceDataScenario):
        @property
        def name(self):
            return "unbuilt"

    with pytest.raises(TypeError):
        Unbuilt()
