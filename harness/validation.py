# harness/validation.py
"""
Validation Rule Engine

Classifies ResponseRecords against declared expectations.

Rules:
- StatusSetRule / StatusRangeRule: status-code expectations
- HeuristicContentRule: status range OR keyword-in-body (rejection checks
  for APIs without a stable structured error code)
- Field rules: presence, absence, equality, membership, list length
- ResponseTimeRule, ContentTypeRule, WellFormedJsonRule
- AllOfRule / NotRule: composition

The heuristic rule is deliberately permissive: it proves the API rejected the
request, not why. A 422 for an unrelated reason still passes a past-date
check, and so does a 200 whose body happens to contain "date".
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, FrozenSet, List, Optional, Tuple

from harness.errors import HarnessError, ValidationFailure
from harness.models import ErrorKind, ResponseRecord, ValidationOutcome
from harness.reporting import NullReportSink, ReportContext, ReportSink
from harness.response_inspector import ResponseInspector

logger = logging.getLogger(__name__)


def _outcome(rule: "Rule", passed: bool, detail: str, expected: Any, actual: Any) -> ValidationOutcome:
    return ValidationOutcome(
        passed=passed,
        reason_code=None if passed else ErrorKind.VALIDATION,
        detail=detail,
        rule_name=rule.name,
        expected=expected,
        actual=actual,
    )


class Rule(ABC):
    """Base for all rules; subclasses are frozen dataclasses"""

    @property
    def name(self) -> str:
        return type(self).__name__

    @abstractmethod
    def evaluate(self, record: ResponseRecord, inspector: ResponseInspector) -> ValidationOutcome:
        pass


# ==================== Status Rules ====================

@dataclass(frozen=True)
class StatusSetRule(Rule):
    expected: FrozenSet[int]
    label: str = ""

    def __post_init__(self):
        object.__setattr__(self, "expected", frozenset(int(s) for s in self.expected))

    @property
    def name(self) -> str:
        return self.label or f"status_in_{'_'.join(str(s) for s in sorted(self.expected))}"

    def evaluate(self, record, inspector):
        ok = record.status_code in self.expected
        return _outcome(
            self, ok,
            f"status {record.status_code} {'in' if ok else 'not in'} {sorted(self.expected)}",
            sorted(self.expected), record.status_code,
        )


@dataclass(frozen=True)
class StatusRangeRule(Rule):
    """low <= status < high"""
    low: int
    high: int

    @property
    def name(self) -> str:
        return f"status_{self.low}_to_{self.high}"

    def evaluate(self, record, inspector):
        ok = self.low <= record.status_code < self.high
        return _outcome(
            self, ok,
            f"status {record.status_code} {'within' if ok else 'outside'} [{self.low}, {self.high})",
            f"[{self.low}, {self.high})", record.status_code,
        )


@dataclass(frozen=True)
class HeuristicContentRule(Rule):
    """
    Passes iff status is in [status_range) OR the lower-cased body contains
    any keyword. With require_both the two checks are AND-ed instead, and a
    non-empty `statuses` set replaces the range.
    """
    keywords: Tuple[str, ...]
    status_range: Tuple[int, int] = (400, 600)
    require_both: bool = False
    statuses: FrozenSet[int] = frozenset()
    label: str = "heuristic_rejection"

    @property
    def name(self) -> str:
        return self.label

    def _status_ok(self, status: int) -> bool:
        if self.statuses:
            return status in self.statuses
        low, high = self.status_range
        return low <= status < high

    def evaluate(self, record, inspector):
        status_ok = self._status_ok(record.status_code)
        body = record.text.lower()
        matched = [k for k in self.keywords if k.lower() in body]
        ok = (status_ok and bool(matched)) if self.require_both else (status_ok or bool(matched))

        expected_status = sorted(self.statuses) if self.statuses else f"[{self.status_range[0]}, {self.status_range[1]})"
        joiner = "and" if self.require_both else "or"
        return _outcome(
            self, ok,
            f"status {record.status_code} (match={status_ok}) {joiner} keywords {matched or 'none'} in body",
            f"status {expected_status} {joiner} any of {list(self.keywords)}",
            {"status": record.status_code, "keywords_found": matched},
        )


# ==================== Field Rules ====================

@dataclass(frozen=True)
class FieldPresentRule(Rule):
    path: str

    @property
    def name(self) -> str:
        return f"present:{self.path}"

    def evaluate(self, record, inspector):
        value = inspector.get(self.path)
        ok = value is not None
        return _outcome(self, ok, f"{self.path} {'present' if ok else 'missing'}", "not null", value)


@dataclass(frozen=True)
class FieldAbsentRule(Rule):
    path: str

    @property
    def name(self) -> str:
        return f"absent:{self.path}"

    def evaluate(self, record, inspector):
        value = inspector.get(self.path)
        ok = value is None
        return _outcome(self, ok, f"{self.path} {'absent' if ok else 'present'}", None, value)


@dataclass(frozen=True)
class FieldEqualsRule(Rule):
    """Equality after string normalisation (see ResponseInspector.extract_str)."""
    path: str
    expected: Any
    ignore_case: bool = False

    @property
    def name(self) -> str:
        return f"equals:{self.path}"

    def evaluate(self, record, inspector):
        actual = inspector.extract_str(self.path)
        want = None if self.expected is None else (
            str(self.expected).lower() if isinstance(self.expected, bool) else str(self.expected)
        )
        if self.ignore_case and actual is not None and want is not None:
            ok = actual.lower() == want.lower()
        else:
            ok = actual == want
        return _outcome(self, ok, f"{self.path} == {want!r} (got {actual!r})", want, actual)


@dataclass(frozen=True)
class FieldContainsRule(Rule):
    """List at path contains member."""
    path: str
    member: Any

    @property
    def name(self) -> str:
        return f"contains:{self.path}"

    def evaluate(self, record, inspector):
        values = inspector.extract_list(self.path)
        ok = values is not None and self.member in values
        return _outcome(self, ok, f"{self.path} contains {self.member!r}: {ok}", self.member, values)


@dataclass(frozen=True)
class FieldLengthRule(Rule):
    path: str
    length: int

    @property
    def name(self) -> str:
        return f"length:{self.path}"

    def evaluate(self, record, inspector):
        values = inspector.extract_list(self.path)
        actual = None if values is None else len(values)
        ok = actual == self.length
        return _outcome(self, ok, f"len({self.path}) == {self.length} (got {actual})", self.length, actual)


# ==================== Wire Rules ====================

@dataclass(frozen=True)
class ResponseTimeRule(Rule):
    max_millis: int

    @property
    def name(self) -> str:
        return "response_time"

    def evaluate(self, record, inspector):
        ok = record.elapsed_millis < self.max_millis
        return _outcome(
            self, ok, f"{record.elapsed_millis}ms < {self.max_millis}ms: {ok}",
            f"< {self.max_millis}", record.elapsed_millis,
        )


@dataclass(frozen=True)
class ContentTypeRule(Rule):
    fragment: str = "application/json"

    @property
    def name(self) -> str:
        return "content_type"

    def evaluate(self, record, inspector):
        actual = record.content_type
        ok = actual is not None and self.fragment.lower() in actual.lower()
        return _outcome(self, ok, f"content-type {actual!r} contains {self.fragment!r}: {ok}", self.fragment, actual)


@dataclass(frozen=True)
class WellFormedJsonRule(Rule):

    @property
    def name(self) -> str:
        return "well_formed_json"

    def evaluate(self, record, inspector):
        ok = inspector.is_well_formed_json()
        return _outcome(self, ok, "body is valid JSON" if ok else "body is not valid JSON", True, ok)


@dataclass(frozen=True)
class NonEmptyBodyRule(Rule):

    @property
    def name(self) -> str:
        return "non_empty_body"

    def evaluate(self, record, inspector):
        size = len(record.body)
        return _outcome(self, size > 0, f"body size {size} bytes", "> 0", size)


# ==================== Composition ====================

@dataclass(frozen=True)
class AllOfRule(Rule):
    rules: Tuple[Rule, ...]
    label: str = "all_of"

    @property
    def name(self) -> str:
        return self.label

    def evaluate(self, record, inspector):
        parts = [r.evaluate(record, inspector) for r in self.rules]
        failed = [p for p in parts if not p.passed]
        detail = "; ".join(p.detail for p in (failed or parts))
        return _outcome(
            self, not failed, detail,
            [p.expected for p in parts], [p.actual for p in parts],
        )


@dataclass(frozen=True)
class NotRule(Rule):
    rule: Rule

    @property
    def name(self) -> str:
        return f"not:{self.rule.name}"

    def evaluate(self, record, inspector):
        inner = self.rule.evaluate(record, inspector)
        return _outcome(
            self, not inner.passed, f"expected {self.rule.name} to fail: {inner.detail}",
            f"not {inner.expected}", inner.actual,
        )


# ==================== Presets ====================

PAST_DATE_REJECTION = HeuristicContentRule(
    keywords=("past", "date", "invalid", "cannot"), label="past_date_rejection",
)
FUTURE_DATE_REJECTION = HeuristicContentRule(
    keywords=("future", "date", "invalid", "range"), label="future_date_rejection",
)
INVALID_FORMAT_REJECTION = HeuristicContentRule(
    keywords=("invalid", "format", "validation"), status_range=(400, 500), label="invalid_format_rejection",
)
AUTH_REJECTION = StatusSetRule({401, 403}, label="auth_rejection")
VALIDATION_REJECTION = StatusSetRule({400, 422}, label="validation_rejection")
LOGIN_SUCCESS = AllOfRule(
    (StatusSetRule({200}), FieldPresentRule("data.token")), label="login_success",
)


def missing_field_rule(field_name: str) -> HeuristicContentRule:
    """400/422 AND the body names the field (or says required/missing)."""
    return HeuristicContentRule(
        keywords=(field_name.lower(), "required", "missing"),
        require_both=True,
        statuses=frozenset({400, 422}),
        label=f"missing_field:{field_name}",
    )


# ==================== Engine ====================

class ValidationRuleEngine:
    """
    Per-scenario classifier. Accumulates outcomes and emits pass/fail events
    to the report sink under the scenario's context.
    """

    def __init__(self, report: Optional[ReportSink] = None, context: Optional[ReportContext] = None):
        self.report = report or NullReportSink()
        self.context = context or ReportContext.for_scenario("adhoc")
        self._outcomes: List[ValidationOutcome] = []

    def classify(self, record: ResponseRecord, rule: Rule) -> ValidationOutcome:
        """Evaluate one rule; never raises."""
        try:
            return rule.evaluate(record, ResponseInspector(record))
        except HarnessError as e:
            logger.warning(f"⚠️ Rule {rule.name} errored: {e}")
            return ValidationOutcome(False, e.kind, str(e), rule.name)
        except Exception as e:
            logger.error(f"❌ Rule {rule.name} crashed: {type(e).__name__}: {e}")
            return ValidationOutcome(False, ErrorKind.VALIDATION, f"{type(e).__name__}: {e}", rule.name)

    def order_not_created(self, record: ResponseRecord) -> bool:
        """
        True if the status is an error, or a success status carries no
        resolvable order id. Lookup errors count as "not created".
        """
        try:
            if 400 <= record.status_code < 600:
                return True
            return ResponseInspector(record).order_id() is None
        except Exception as e:
            logger.debug(f"order id lookup failed, treating as not created: {e}")
            return True

    def check(self, record: ResponseRecord, rule: Rule, message: Optional[str] = None) -> ValidationOutcome:
        outcome = self.classify(record, rule)
        self._record(outcome, message)
        return outcome

    def expect(self, condition: bool, message: str, expected: Any = None, actual: Any = None) -> ValidationOutcome:
        """Record an ad-hoc assertion that has no rule object."""
        outcome = ValidationOutcome(
            passed=bool(condition),
            reason_code=None if condition else ErrorKind.VALIDATION,
            detail=message,
            rule_name="expect",
            expected=expected,
            actual=actual,
        )
        self._record(outcome, message)
        return outcome

    def _record(self, outcome: ValidationOutcome, message: Optional[str]) -> None:
        self._outcomes.append(outcome)
        text = message or outcome.rule_name
        if outcome.passed:
            self.report.pass_(self.context, f"✓ {text}")
        else:
            self.report.fail(self.context, f"✗ {text}: {outcome.detail}")

    # ==================== Results ====================

    @property
    def outcomes(self) -> List[ValidationOutcome]:
        return list(self._outcomes)

    @property
    def passed(self) -> bool:
        return bool(self._outcomes) and all(o.passed for o in self._outcomes)

    def failures(self) -> List[ValidationOutcome]:
        return [o for o in self._outcomes if not o.passed]

    def raise_if_failed(self) -> None:
        failed = self.failures()
        if not failed:
            return
        first = failed[0]
        raise ValidationFailure(
            f"{len(failed)} of {len(self._outcomes)} checks failed; first: {first.rule_name}: {first.detail}",
            expected=first.expected,
            actual=first.actual,
            outcomes=failed,
        )
