# harness/scenarios/base.py
"""
Base class for scenarios.
All scenarios must inherit from AbstractScenario.
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from harness.api_client import ApiClient
from harness.config import HarnessConfig
from harness.entity_generator import EntityGenerator
from harness.errors import HarnessError, ValidationFailure
from harness.models import ResponseRecord, Session, ValidationOutcome
from harness.reporting import ReportContext, ReportSink, notify_finish, notify_start
from harness.request_builder import RequestBuilder
from harness.response_inspector import ResponseInspector
from harness.validation import ValidationRuleEngine
from harness.workflow import WorkflowOrchestrator

logger = logging.getLogger(__name__)


@dataclass
class ScenarioContext:
    """Everything one scenario execution owns. Never shared between scenarios."""
    config: HarnessConfig
    client: ApiClient
    builder: RequestBuilder
    workflow: WorkflowOrchestrator
    engine: ValidationRuleEngine
    generator: EntityGenerator
    report: ReportSink
    context: ReportContext

    def info(self, message: str) -> None:
        self.report.info(self.context, message)

    def login(self) -> Session:
        """Authenticate with the configured test account."""
        self.config.require_credentials()
        return self.workflow.authenticate(self.config.test_email, self.config.test_password)

    def inspect(self, record: ResponseRecord) -> ResponseInspector:
        return ResponseInspector(record)

    def log_response(self, record: ResponseRecord) -> None:
        self.info(f"Status {record.status_code} in {record.elapsed_millis}ms")
        message = ResponseInspector(record).error_message()
        if message:
            self.info(f"Message: {message}")


@dataclass
class ScenarioResult:
    name: str
    passed: bool
    outcomes: List[ValidationOutcome] = field(default_factory=list)
    error: Optional[str] = None
    error_kind: Optional[str] = None
    duration_s: float = 0.0
    context_id: str = ""

    @property
    def failed_checks(self) -> int:
        return sum(1 for o in self.outcomes if not o.passed)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "passed": self.passed,
            "error": self.error,
            "error_kind": self.error_kind,
            "duration_s": round(self.duration_s, 3),
            "context_id": self.context_id,
            "checks": len(self.outcomes),
            "failed_checks": self.failed_checks,
            "outcomes": [o.to_dict() for o in self.outcomes],
        }


class AbstractScenario(ABC):
    """
    Abstract base class for all scenarios.
    Provides a consistent interface and the abort guard.
    """

    suite: str = "misc"

    @property
    @abstractmethod
    def name(self) -> str:
        """Registry key (e.g., 'login_valid')."""
        pass

    @property
    def description(self) -> str:
        return self.name

    @abstractmethod
    def run(self, ctx: ScenarioContext) -> None:
        """
        Drive the workflow and record checks on ctx.engine.

        Exceptions abort the scenario; failed checks do not.
        """
        pass

    def execute(self, ctx: ScenarioContext) -> ScenarioResult:
        """
        Run with error handling. Aborting exceptions become a failed result
        and a fail event; they are never re-raised.
        """
        notify_start(ctx.report, ctx.context)
        t0 = time.perf_counter()
        error: Optional[BaseException] = None

        try:
            self.run(ctx)
            logger.debug("✅ Scenario '%s' completed", self.name)

        except ValidationFailure as e:
            error = e
            logger.warning("❌ Scenario '%s' aborted: %s", self.name, e)
            ctx.report.fail(ctx.context, f"Aborted: {e}", e)

        except HarnessError as e:
            error = e
            logger.error("❌ Scenario '%s' aborted (%s): %s", self.name, e.kind.value, e)
            ctx.report.fail(ctx.context, f"Aborted ({e.kind.value}): {e}", e)

        except Exception as e:
            error = e
            logger.exception("❌ Scenario '%s' crashed", self.name)
            ctx.report.fail(ctx.context, f"Scenario execution failed: {type(e).__name__}: {e}", e)

        passed = error is None and ctx.engine.passed
        if error is None and not ctx.engine.outcomes:
            ctx.report.fail(ctx.context, "No checks were recorded")

        result = ScenarioResult(
            name=self.name,
            passed=passed,
            outcomes=ctx.engine.outcomes,
            error=None if error is None else f"{type(error).__name__}: {error}",
            error_kind=getattr(getattr(error, "kind", None), "value", None) if error else None,
            duration_s=time.perf_counter() - t0,
            context_id=ctx.context.context_id,
        )
        notify_finish(ctx.report, ctx.context, passed)
        return result
