# harness/scenario_runner.py
"""
Scenario Runner

Executes scenarios sequentially or on a thread pool. Every execution gets a
fresh ApiClient, RequestBuilder, WorkflowOrchestrator, ValidationRuleEngine,
EntityGenerator and ReportContext; only the (thread-safe) ReportSink is
shared.

Usage:
    runner = ScenarioRunner(HarnessConfig.from_env(), LoggingReportSink())
    summary = runner.run(get_scenarios(["login"]))
"""

from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Callable, Dict, List, Optional, Sequence

import httpx

from harness.api_client import ApiClient
from harness.config import HarnessConfig
from harness.entity_generator import EntityGenerator
from harness.reporting import ReportContext, ReportSink
from harness.request_builder import RequestBuilder
from harness.scenarios.base import AbstractScenario, ScenarioContext, ScenarioResult
from harness.validation import ValidationRuleEngine
from harness.workflow import WorkflowOrchestrator

logger = logging.getLogger(__name__)


@dataclass
class RunSummary:
    total: int = 0
    passed: int = 0
    failed: int = 0
    results: List[ScenarioResult] = field(default_factory=list)
    duration_s: float = 0.0

    @property
    def ok(self) -> bool:
        return self.failed == 0

    def failures(self) -> List[ScenarioResult]:
        return [r for r in self.results if not r.passed]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total": self.total,
            "passed": self.passed,
            "failed": self.failed,
            "duration_s": round(self.duration_s, 3),
            "results": [r.to_dict() for r in self.results],
        }


class ScenarioRunner:
    """Runs scenarios in isolation and aggregates their results"""

    def __init__(
        self,
        config: HarnessConfig,
        sink: ReportSink,
        transport: Optional[httpx.BaseTransport] = None,
        seed: Optional[int] = None,
        clock: Optional[Callable[[], date]] = None,
    ):
        self.config = config
        self.sink = sink
        self.transport = transport
        self.seed = seed
        self.clock = clock

    def _context_for(self, scenario: AbstractScenario, client: ApiClient) -> ScenarioContext:
        report_ctx = ReportContext.for_scenario(scenario.name, scenario.description)
        builder = RequestBuilder(web_origin=self.config.web_origin)
        return ScenarioContext(
            config=self.config,
            client=client,
            builder=builder,
            workflow=WorkflowOrchestrator(client, builder, self.config, self.sink, report_ctx),
            engine=ValidationRuleEngine(self.sink, report_ctx),
            generator=EntityGenerator(seed=self.seed, clock=self.clock),
            report=self.sink,
            context=report_ctx,
        )

    def run_one(self, scenario: AbstractScenario) -> ScenarioResult:
        with ApiClient(self.config, transport=self.transport) as client:
            ctx = self._context_for(scenario, client)
            result = scenario.execute(ctx)
        status = "✅ PASSED" if result.passed else "❌ FAILED"
        logger.info(f"{status} {result.name} ({result.duration_s:.2f}s, {len(result.outcomes)} checks)")
        return result

    def run(self, scenarios: Sequence[AbstractScenario]) -> RunSummary:
        t0 = time.perf_counter()
        workers = max(1, min(self.config.max_workers, len(scenarios) or 1))
        logger.info(f"🚀 Running {len(scenarios)} scenario(s) with {workers} worker(s)")

        if workers == 1:
            results = [self.run_one(s) for s in scenarios]
        else:
            by_index: Dict[int, ScenarioResult] = {}
            with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="scenario") as pool:
                futures = {pool.submit(self.run_one, s): i for i, s in enumerate(scenarios)}
                for future in as_completed(futures):
                    by_index[futures[future]] = future.result()
            results = [by_index[i] for i in range(len(scenarios))]

        passed = sum(1 for r in results if r.passed)
        summary = RunSummary(
            total=len(results),
            passed=passed,
            failed=len(results) - passed,
            results=results,
            duration_s=time.perf_counter() - t0,
        )
        logger.info(f"🏁 {summary.passed}/{summary.total} passed in {summary.duration_s:.2f}s")
        return summary
