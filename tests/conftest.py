# tests/conftest.py
"""
Shared fixtures. The remote API is simulated in-process by FakeOrderApi,
mounted on httpx.MockTransport, so nothing here touches the network.
"""

from __future__ import annotations

import json
import re
from datetime import date, datetime, timedelta
from typing import Any, Dict, List, Optional

import httpx
import pytest

from harness.api_client import ApiClient
from harness.config import DictConfigSource, HarnessConfig
from harness.entity_generator import DATE_FORMAT, EntityGenerator
from harness.reporting import InMemoryReportSink, ReportContext
from harness.request_builder import RequestBuilder
from harness.validation import ValidationRuleEngine
from harness.workflow import WorkflowOrchestrator

BASE_URI = "https://api.test.local/api"
TEST_EMAIL = "qa.user@test.com"
TEST_PASSWORD = "Secret123!"
TODAY = date(2025, 3, 10)

REQUIRED_ORDER_FIELDS = (
    "patient_data",
    "facility_account_number",
    "physician_npi",
    "order_codes",
    "services",
    "icd_10_codes",
    "billing_type",
    "date_of_service",
    "tube_data",
)

_ICD10_RE = re.compile(r"^[A-Z]\d{2}(\.\d{1,4})?$")


class FakeOrderApi:
    """
    Minimal stand-in for the order service.

    Mirrors the behaviours the scenarios probe: bearer auth, required fields,
    date validation (past / far future / malformed), reference data checks
    and standing-order expansion into one order per day.
    """

    TOKEN = "tok-abc123"
    USER_ID = "64f0c0ffee"

    def __init__(self, today: date = TODAY, accept_past_dates: bool = False):
        self.today = today
        self.accept_past_dates = accept_past_dates
        self.requests: List[httpx.Request] = []
        self._next_order = 1000

    # ==================== Dispatch ====================

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if request.method == "POST" and path.endswith("/users/login"):
            return self._login(request)
        if request.method == "POST" and path.endswith("/orders/saveOrder"):
            return self._save_order(request)
        m = re.search(r"/users/([^/]+)$", path)
        if request.method == "GET" and m:
            return self._get_user(request, m.group(1))
        return httpx.Response(404, json={"message": f"No route for {request.method} {path}"})

    @staticmethod
    def _body(request: httpx.Request) -> Dict[str, Any]:
        return json.loads(request.content or b"{}")

    def _authorized(self, request: httpx.Request) -> bool:
        return request.headers.get("authorization") == f"Bearer {self.TOKEN}"

    def _user(self) -> Dict[str, Any]:
        return {
            "_id": self.USER_ID,
            "email": TEST_EMAIL,
            "first_name": "Quality",
            "last_name": "Analyst",
            "phone": "9000000000",
        }

    # ==================== Handlers ====================

    def _login(self, request: httpx.Request) -> httpx.Response:
        body = self._body(request)
        email, password = body.get("email"), body.get("password")
        if not email or not password:
            return httpx.Response(400, json={"message": "email and password are required"})
        if email != TEST_EMAIL:
            return httpx.Response(404, json={"message": "User not found"})
        if password != TEST_PASSWORD:
            return httpx.Response(401, json={"message": "Invalid credentials"})
        if body.get("application_type") not in ("web", "mobile"):
            return httpx.Response(400, json={"message": "Unsupported application type"})
        return httpx.Response(
            200,
            json={"success": True, "message": "Login successful", "data": {"token": self.TOKEN, "user": self._user()}},
        )

    def _get_user(self, request: httpx.Request, user_id: str) -> httpx.Response:
        if not self._authorized(request):
            return httpx.Response(401, json={"message": "Unauthorized"})
        if user_id != self.USER_ID:
            return httpx.Response(404, json={"message": "User not found"})
        return httpx.Response(200, json={"data": {"user": self._user()}})

    def _parse_date(self, value: Any) -> Optional[date]:
        try:
            return datetime.strptime(str(value), DATE_FORMAT).date()
        except ValueError:
            return None

    def _save_order(self, request: httpx.Request) -> httpx.Response:
        if not self._authorized(request):
            return httpx.Response(401, json={"message": "Unauthorized"})
        body = self._body(request)

        missing = [f for f in REQUIRED_ORDER_FIELDS if f not in body]
        if missing:
            return httpx.Response(422, json={"message": f"{missing[0]} is required", "errors": missing})

        patient = body["patient_data"]
        if self._parse_date(patient.get("date_of_birth")) is None:
            return httpx.Response(400, json={"message": "invalid date format for date_of_birth"})

        start = self._parse_date(body.get("standing_start_date"))
        end = self._parse_date(body.get("standing_end_date"))
        service = self._parse_date(body.get("date_of_service"))
        if start is None or end is None or service is None:
            return httpx.Response(400, json={"message": "invalid date format"})
        if start < self.today and not self.accept_past_dates:
            return httpx.Response(422, json={"message": "Order dates cannot be in the past"})
        if service > self.today + timedelta(days=180):
            return httpx.Response(422, json={"message": "date of service is out of the allowed range"})

        if not all(_ICD10_RE.match(c) for c in body["icd_10_codes"]):
            return httpx.Response(400, json={"error": "invalid icd_10_codes"})
        if not str(body["physician_npi"]).isdigit():
            return httpx.Response(400, json={"message": "physician_npi must be numeric"})
        if not str(body["facility_account_number"]).startswith("TG"):
            return httpx.Response(404, json={"message": "facility account not found"})

        days = [start + timedelta(days=i) for i in range((end - start).days + 1)]
        orders = []
        for d in days:
            self._next_order += 1
            orders.append({
                "order_id": f"ORD-{self._next_order}",
                "order_type": "MLX",
                "status": "ACTIVE",
                "facility_account_number": body["facility_account_number"],
                "physician_npi": body["physician_npi"],
                "billing_type": body["billing_type"],
                "order_codes": body["order_codes"],
                "icd_10_codes": body["icd_10_codes"],
                "fasting": body.get("fasting"),
                "is_stat": body.get("is_stat"),
                "patient_info": {
                    k: patient.get(k) for k in ("first_name", "last_name", "gender", "email")
                },
                "phlebo_order": {"date_of_service": d.strftime(DATE_FORMAT)},
            })
        return httpx.Response(
            201,
            json={
                "message": "Orders created successfully",
                "data": {
                    "orders": orders,
                    "total_orders_created": len(orders),
                    "standing_order_details": {
                        "start_date": body["standing_start_date"],
                        "end_date": body["standing_end_date"],
                        "frequency": body["standing_frequency"],
                        "service_dates": [d.strftime(DATE_FORMAT) for d in days],
                    },
                },
            },
        )


# ==================== Fixtures ====================

@pytest.fixture
def fake_api() -> FakeOrderApi:
    return FakeOrderApi()


@pytest.fixture
def transport(fake_api) -> httpx.MockTransport:
    return httpx.MockTransport(fake_api)


@pytest.fixture
def config() -> HarnessConfig:
    return HarnessConfig.from_source(DictConfigSource({
        "base_uri": BASE_URI,
        "test_email": TEST_EMAIL,
        "test_password": TEST_PASSWORD,
        "timeout_seconds": 5,
    }))


@pytest.fixture
def client(config, transport):
    with ApiClient(config, transport=transport) as c:
        yield c


@pytest.fixture
def builder(config) -> RequestBuilder:
    return RequestBuilder(web_origin=config.web_origin)


@pytest.fixture
def sink() -> InMemoryReportSink:
    return InMemoryReportSink()


@pytest.fixture
def report_context() -> ReportContext:
    return ReportContext.for_scenario("test", "pytest scenario")


@pytest.fixture
def workflow(client, builder, config, sink, report_context) -> WorkflowOrchestrator:
    return WorkflowOrchestrator(client, builder, config, sink, report_context)


@pytest.fixture
def engine(sink, report_context) -> ValidationRuleEngine:
    return ValidationRuleEngine(sink, report_context)


@pytest.fixture
def generator() -> EntityGenerator:
    return EntityGenerator(seed=42, clock=lambda: TODAY)
