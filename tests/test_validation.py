import pytest

from harness.errors import ValidationFailure
from harness.models import ErrorKind, ResponseRecord
from harness.reporting import EventKind
from harness.validation import (
    AUTH_REJECTION,
    FUTURE_DATE_REJECTION,
    INVALID_FORMAT_REJECTION,
    LOGIN_SUCCESS,
    PAST_DATE_REJECTION,
    VALIDATION_REJECTION,
    AllOfRule,
    ContentTypeRule,
    FieldAbsentRule,
    FieldContainsRule,
    FieldEqualsRule,
    FieldLengthRule,
    FieldPresentRule,
    HeuristicContentRule,
    NotRule,
    ResponseTimeRule,
    Rule,
    StatusRangeRule,
    StatusSetRule,
    ValidationRuleEngine,
    WellFormedJsonRule,
    missing_field_rule,
)


def _raw(status, body=b"", elapsed=0):
    return ResponseRecord(status_code=status, body=body, elapsed_millis=elapsed)


# ==================== Status / heuristic ====================

def test_status_set_rule_on_empty_body():
    outcome = ValidationRuleEngine().classify(_raw(422), StatusSetRule({422}))
    assert outcome.passed
    assert outcome.reason_code is None


def test_keyword_alone_passes_heuristic_rule():
    record = _raw(200, b'{"message": "date is invalid"}')
    assert ValidationRuleEngine().classify(record, HeuristicContentRule(("invalid",))).passed


def test_status_alone_passes_heuristic_rule():
    assert ValidationRuleEngine().classify(_raw(500, b"oops"), HeuristicContentRule(("invalid",))).passed


def test_heuristic_rule_fails_on_clean_success():
    outcome = ValidationRuleEngine().classify(_raw(201, b'{"message": "Created"}'), PAST_DATE_REJECTION)
    assert not outcome.passed
    assert outcome.reason_code == ErrorKind.VALIDATION
    assert outcome.rule_name == "past_date_rejection"


def test_keyword_match_is_case_insensitive():
    record = _raw(200, b'{"message": "Date CANNOT be in the PAST"}')
    assert ValidationRuleEngine().classify(record, PAST_DATE_REJECTION).passed


def test_future_date_keywords():
    record = _raw(200, b'{"message": "service date out of range"}')
    assert ValidationRuleEngine().classify(record, FUTURE_DATE_REJECTION).passed


def test_invalid_format_rule_ignores_5xx_without_keywords():
    engine = ValidationRuleEngine()
    assert not engine.classify(_raw(503, b"down"), INVALID_FORMAT_REJECTION).passed
    assert engine.classify(_raw(404, b""), INVALID_FORMAT_REJECTION).passed


@pytest.mark.parametrize("status, expected", [(401, True), (403, True), (422, False)])
def test_auth_rejection(status, expected):
    assert ValidationRuleEngine().classify(_raw(status), AUTH_REJECTION).passed is expected


@pytest.mark.parametrize(
    "status, body, expected",
    [
        (422, b'{"message": "physician_npi is required"}', True),
        (400, b'{"message": "Physician missing"}', True),
        (422, b'{"message": "something else"}', False),
        (500, b'{"message": "physician_npi is required"}', False),
    ],
)
def test_missing_field_rule_needs_status_and_keyword(status, body, expected):
    rule = missing_field_rule("physician")
    assert ValidationRuleEngine().classify(_raw(status, body), rule).passed is expected


def test_status_range_is_half_open():
    engine = ValidationRuleEngine()
    assert engine.classify(_raw(400), StatusRangeRule(400, 600)).passed
    assert not engine.classify(_raw(600), StatusRangeRule(400, 600)).passed


# ==================== Field / wire rules ====================

ORDER = ResponseRecord.from_json(201, {
    "message": "ok",
    "data": {
        "orders": [{"order_type": "MLX", "fasting": True, "icd_10_codes": ["A21.8", "A04.9"]}],
        "total_orders_created": 4,
        "standing_order_details": {"service_dates": ["a", "b", "c", "d"]},
    },
}, elapsed_millis=120)


@pytest.mark.parametrize(
    "rule, expected",
    [
        (FieldPresentRule("data.orders[0].order_type"), True),
        (FieldPresentRule("data.orders[1]"), False),
        (FieldAbsentRule("error"), True),
        (FieldEqualsRule("data.orders[0].order_type", "MLX"), True),
        (FieldEqualsRule("data.total_orders_created", 4), True),
        (FieldEqualsRule("data.orders[0].fasting", True), True),
        (FieldEqualsRule("data.orders[0].order_type", "mlx", ignore_case=True), True),
        (FieldEqualsRule("data.orders[0].order_type", "mlx"), False),
        (FieldContainsRule("data.orders[0].icd_10_codes", "A04.9"), True),
        (FieldContainsRule("data.orders[0].icd_10_codes", "Z99"), False),
        (FieldLengthRule("data.standing_order_details.service_dates", 4), True),
        (ResponseTimeRule(120), False),
        (ResponseTimeRule(121), True),
        (ContentTypeRule(), True),
        (WellFormedJsonRule(), True),
        (AllOfRule((StatusSetRule({201}), FieldPresentRule("message"))), True),
        (NotRule(StatusSetRule({200})), True),
    ],
)
def test_field_and_wire_rules(rule, expected):
    assert ValidationRuleEngine().classify(ORDER, rule).passed is expected


def test_login_success_preset():
    ok = ResponseRecord.from_json(200, {"data": {"token": "t"}})
    engine = ValidationRuleEngine()
    assert engine.classify(ok, LOGIN_SUCCESS).passed
    assert engine.classify(ResponseRecord.from_json(200, {"data": {}}), NotRule(LOGIN_SUCCESS)).passed


def test_classify_never_raises():
    class Exploding(Rule):
        def evaluate(self, record, inspector):
            raise RuntimeError("boom")

    outcome = ValidationRuleEngine().classify(_raw(200), Exploding())
    assert not outcome.passed
    assert "boom" in outcome.detail


def test_rule_base_is_abstract():
    with pytest.raises(TypeError):
        Rule()


# ==================== order_not_created ====================

@pytest.mark.parametrize(
    "record, expected",
    [
        (ResponseRecord.from_json(422, {"data": {"orders": [{"order_id": "X"}]}}), True),
        (ResponseRecord.from_json(201, {"data": {"orders": [{"order_id": "X"}]}}), False),
        (ResponseRecord.from_json(201, {"data": {"order_id": "Y"}}), False),
        (ResponseRecord.from_json(200, {"data": {}}), True),
        (_raw(200, b"not json"), True),
    ],
)
def test_order_not_created(record, expected):
    assert ValidationRuleEngine().order_not_created(record) is expected


# ==================== Engine bookkeeping ====================

def test_check_records_outcomes_and_emits_events(sink, report_context):
    engine = ValidationRuleEngine(sink, report_context)
    engine.check(_raw(422), VALIDATION_REJECTION, "Rejected")
    engine.check(_raw(422), StatusSetRule({201}), "Created")

    assert len(engine.outcomes) == 2
    assert not engine.passed
    assert [o.rule_name for o in engine.failures()] == ["status_in_201"]
    kinds = [e.kind for e in sink.events(report_context)]
    assert kinds == [EventKind.PASS, EventKind.FAIL]


def test_passed_requires_at_least_one_outcome():
    engine = ValidationRuleEngine()
    assert engine.passed is False
    engine.expect(True, "trivially true")
    assert engine.passed is True


def test_raise_if_failed_carries_first_failure():
    engine = ValidationRuleEngine()
    engine.check(_raw(500), StatusSetRule({201}))
    engine.check(_raw(500), StatusSetRule({200}))
    with pytest.raises(ValidationFailure) as info:
        engine.raise_if_failed()
    assert info.value.expected == [201]
    assert info.value.actual == 500
    assert len(info.value.outcomes) == 2


def test_raise_if_failed_is_quiet_when_all_pass():
    engine = ValidationRuleEngine()
    engine.check(_raw(201), StatusSetRule({201}))
    engine.raise_if_failed()
