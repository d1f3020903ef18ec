# harness/reporting.py
"""
Report sinks.

Scenarios report info/pass/fail events through a ReportSink. Every event is
tagged with the ReportContext of the scenario that produced it, so a sink
shared by several worker threads still attributes events correctly.
HTML rendering and on-disk persistence are left to whatever sink a caller
plugs in.
"""

from __future__ import annotations

import logging
import threading
import uuid
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional, Protocol, runtime_checkable

logger = logging.getLogger(__name__)


class EventKind(str, Enum):
    START = "start"
    INFO = "info"
    PASS = "pass"
    FAIL = "fail"
    FINISH = "finish"


@dataclass(frozen=True)
class ReportContext:
    """Per-scenario token passed explicitly through the call chain."""
    name: str
    description: str = ""
    context_id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])

    @classmethod
    def for_scenario(cls, name: str, description: str = "") -> "ReportContext":
        return cls(name=name, description=description)


@dataclass(frozen=True)
class ReportEvent:
    context_id: str
    scenario: str
    kind: EventKind
    message: str
    cause: Optional[str] = None
    timestamp: str = field(default_factory=lambda: datetime.now().isoformat())


@runtime_checkable
class ReportSink(Protocol):
    def info(self, context: ReportContext, message: str) -> None: ...

    def pass_(self, context: ReportContext, message: str) -> None: ...

    def fail(self, context: ReportContext, message: str, cause: Optional[BaseException] = None) -> None: ...


def _describe(cause: Optional[BaseException]) -> Optional[str]:
    if cause is None:
        return None
    return f"{type(cause).__name__}: {cause}"


# ==================== Sinks ====================

class InMemoryReportSink:
    """Thread-safe sink that keeps every event, grouped by context"""

    def __init__(self):
        self._events: List[ReportEvent] = []
        self._by_context: Dict[str, List[ReportEvent]] = defaultdict(list)
        self._lock = threading.Lock()

    def _record(self, context: ReportContext, kind: EventKind, message: str, cause: Optional[str] = None) -> None:
        event = ReportEvent(
            context_id=context.context_id,
            scenario=context.name,
            kind=kind,
            message=message,
            cause=cause,
        )
        with self._lock:
            self._events.append(event)
            self._by_context[context.context_id].append(event)

    def start(self, context: ReportContext) -> None:
        self._record(context, EventKind.START, context.description or context.name)

    def info(self, context: ReportContext, message: str) -> None:
        self._record(context, EventKind.INFO, message)

    def pass_(self, context: ReportContext, message: str) -> None:
        self._record(context, EventKind.PASS, message)

    def fail(self, context: ReportContext, message: str, cause: Optional[BaseException] = None) -> None:
        self._record(context, EventKind.FAIL, message, _describe(cause))

    def finish(self, context: ReportContext, passed: bool) -> None:
        self._record(context, EventKind.FINISH, "PASSED" if passed else "FAILED")

    def events(self, context: Optional[ReportContext] = None) -> List[ReportEvent]:
        with self._lock:
            if context is None:
                return list(self._events)
            return list(self._by_context.get(context.context_id, []))

    def messages(self, context: ReportContext, kind: Optional[EventKind] = None) -> List[str]:
        return [e.message for e in self.events(context) if kind is None or e.kind == kind]


class LoggingReportSink:
    """Sink that writes events to the standard logger"""

    def __init__(self, log: Optional[logging.Logger] = None):
        self.log = log or logger

    def start(self, context: ReportContext) -> None:
        self.log.info(f"▶️ [{context.name}#{context.context_id}] {context.description or 'started'}")

    def info(self, context: ReportContext, message: str) -> None:
        self.log.info(f"[{context.name}#{context.context_id}] {message}")

    def pass_(self, context: ReportContext, message: str) -> None:
        self.log.info(f"✅ [{context.name}#{context.context_id}] {message}")

    def fail(self, context: ReportContext, message: str, cause: Optional[BaseException] = None) -> None:
        suffix = f" ({_describe(cause)})" if cause else ""
        self.log.error(f"❌ [{context.name}#{context.context_id}] {message}{suffix}")

    def finish(self, context: ReportContext, passed: bool) -> None:
        self.log.info(f"⏹️ [{context.name}#{context.context_id}] {'PASSED' if passed else 'FAILED'}")


class MultiReportSink:
    """Fans every event out to several sinks"""

    def __init__(self, *sinks):
        self.sinks = list(sinks)

    def start(self, context: ReportContext) -> None:
        for sink in self.sinks:
            notify_start(sink, context)

    def info(self, context: ReportContext, message: str) -> None:
        for sink in self.sinks:
            sink.info(context, message)

    def pass_(self, context: ReportContext, message: str) -> None:
        for sink in self.sinks:
            sink.pass_(context, message)

    def fail(self, context: ReportContext, message: str, cause: Optional[BaseException] = None) -> None:
        for sink in self.sinks:
            sink.fail(context, message, cause)

    def finish(self, context: ReportContext, passed: bool) -> None:
        for sink in self.sinks:
            notify_finish(sink, context, passed)


# Lifecycle hooks are optional on third-party sinks.

def notify_start(sink: ReportSink, context: ReportContext) -> None:
    hook = getattr(sink, "start", None)
    if callable(hook):
        hook(context)


def notify_finish(sink: ReportSink, context: ReportContext, passed: bool) -> None:
    hook = getattr(sink, "finish", None)
    if callable(hook):
        hook(context, passed)


class NullReportSink:
    """Discards events; used when a component is driven without a sink"""

    def info(self, context: ReportContext, message: str) -> None:
        pass

    def pass_(self, context: ReportContext, message: str) -> None:
        pass

    def fail(self, context: ReportContext, message: str, cause: Optional[BaseException] = None) -> None:
        pass
