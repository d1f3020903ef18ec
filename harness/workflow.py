# harness/workflow.py
"""
Workflow Orchestrator

Threads authentication state through dependent calls:

    UNAUTHENTICATED --authenticate ok--> AUTHENTICATED
    UNAUTHENTICATED --authenticate fail--> FAILED (terminal)

Authenticated calls are only allowed from AUTHENTICATED. One orchestrator
belongs to exactly one scenario and issues one call at a time.
"""

from __future__ import annotations

import logging
import threading
from enum import Enum
from typing import Callable, Optional, Union

from harness.api_client import ApiClient
from harness.config import HarnessConfig
from harness.endpoints import OrderBody, get_user_request, login_request, save_order_request
from harness.errors import AuthenticationFailed, InvalidStateError, TransportError
from harness.models import RequestSpec, ResponseRecord, Session
from harness.reporting import NullReportSink, ReportContext, ReportSink
from harness.request_builder import RequestBuilder
from harness.response_inspector import ResponseInspector

logger = logging.getLogger(__name__)


class WorkflowState(str, Enum):
    UNAUTHENTICATED = "UNAUTHENTICATED"
    AUTHENTICATED = "AUTHENTICATED"
    FAILED = "FAILED"


RequestFn = Callable[[RequestBuilder, Session], RequestSpec]


class WorkflowOrchestrator:
    """Owns one Session; not shareable between scenarios"""

    def __init__(
        self,
        client: ApiClient,
        builder: RequestBuilder,
        config: HarnessConfig,
        report: Optional[ReportSink] = None,
        context: Optional[ReportContext] = None,
    ):
        self.client = client
        self.builder = builder
        self.config = config
        self.report = report or NullReportSink()
        self.context = context or ReportContext.for_scenario("workflow")

        self._state = WorkflowState.UNAUTHENTICATED
        self._session = Session(application_type=config.application_type)
        self._last_login: Optional[ResponseRecord] = None
        self._lock = threading.Lock()

    # ==================== State ====================

    @property
    def state(self) -> WorkflowState:
        return self._state

    @property
    def session(self) -> Session:
        return self._session

    @property
    def last_login_response(self) -> Optional[ResponseRecord]:
        return self._last_login

    def _send(self, spec: RequestSpec, operation: str) -> ResponseRecord:
        if not self._lock.acquire(blocking=False):
            raise InvalidStateError(self._state, f"{operation} (concurrent call)")
        try:
            return self.client.send(spec)
        finally:
            self._lock.release()

    # ==================== Authentication ====================

    def authenticate(
        self,
        email: Optional[str],
        password: Optional[str],
        app_type: Optional[str] = None,
    ) -> Session:
        """
        Log in and move to AUTHENTICATED.

        Raises:
            InvalidStateError: workflow already FAILED
            AuthenticationFailed: non-200, or no token/user id in the body
            TransportError: no response (workflow moves to FAILED)
        """
        if self._state == WorkflowState.FAILED:
            raise InvalidStateError(self._state, "authenticate")

        app_type = app_type or self.config.application_type
        spec = login_request(self.builder, email, password, app_type)
        self.report.info(self.context, f"Login as {email!r} (application_type={app_type})")

        try:
            record = self._send(spec, "authenticate")
        except TransportError as e:
            self._state = WorkflowState.FAILED
            self.report.fail(self.context, "Login request did not complete", e)
            raise

        self._last_login = record
        inspector = ResponseInspector(record)
        token = inspector.auth_token()
        user_id = inspector.user_id()

        if record.status_code != 200 or token is None or user_id is None:
            self._state = WorkflowState.FAILED
            if record.status_code != 200:
                detail = f"status {record.status_code}: {inspector.error_message() or 'no message'}"
            elif token is None:
                detail = "data.token missing from 200 response"
            else:
                detail = "data.user._id missing from 200 response"
            logger.warning(f"❌ Authentication failed: {detail}")
            raise AuthenticationFailed(record, detail)

        self._session = Session(auth_token=token, user_id=user_id, application_type=app_type)
        self._state = WorkflowState.AUTHENTICATED
        logger.info(f"✅ Authenticated user {user_id} ({record.elapsed_millis}ms)")
        self.report.info(self.context, f"Authenticated; user id {user_id}")
        return self._session

    # ==================== Authenticated Calls ====================

    def with_session(self, request_fn: RequestFn) -> ResponseRecord:
        """Build a request from the current session and send it."""
        if self._state != WorkflowState.AUTHENTICATED:
            raise InvalidStateError(self._state, "with_session")
        spec = request_fn(self.builder, self._session)
        return self._send(spec, "with_session")

    def get_user(self, user_id: Optional[str] = None) -> ResponseRecord:
        return self.with_session(
            lambda b, s: get_user_request(b, s.auth_token, user_id or s.user_id)
        )

    def save_order(self, order: OrderBody) -> ResponseRecord:
        return self.with_session(
            lambda b, s: save_order_request(b, s.auth_token, s.user_id, order)
        )

    def send_unauthenticated(self, spec: Union[RequestSpec, Callable[[RequestBuilder], RequestSpec]]) -> ResponseRecord:
        """
        Send a request outside the session (negative-auth checks). Allowed in
        any state except FAILED.
        """
        if self._state == WorkflowState.FAILED:
            raise InvalidStateError(self._state, "send_unauthenticated")
        if callable(spec):
            spec = spec(self.builder)
        return self._send(spec, "send_unauthenticated")
