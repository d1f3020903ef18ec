# harness/scenarios/login.py
"""
Login scenarios: valid credentials plus the negative credential cases.
"""

from __future__ import annotations

import logging

from harness.endpoints import login_request
from harness.scenarios.base import AbstractScenario, ScenarioContext
from harness.validation import (
    LOGIN_SUCCESS,
    AllOfRule,
    ContentTypeRule,
    FieldAbsentRule,
    FieldEqualsRule,
    FieldPresentRule,
    NonEmptyBodyRule,
    NotRule,
    ResponseTimeRule,
    StatusRangeRule,
    StatusSetRule,
    WellFormedJsonRule,
)

logger = logging.getLogger(__name__)

APPLICATION_TYPES = ("web", "mobile")
INVALID_EMAIL = "invalid.email@test.com"


class ValidLoginScenario(AbstractScenario):
    suite = "login"

    @property
    def name(self) -> str:
        return "login_valid"

    @property
    def description(self) -> str:
        return "Login with valid credentials and verify the full response"

    def run(self, ctx: ScenarioContext) -> None:
        ctx.config.require_credentials()
        email = ctx.config.test_email
        record = ctx.workflow.send_unauthenticated(
            lambda b: login_request(b, email, ctx.config.test_password, ctx.config.application_type)
        )
        ctx.log_response(record)
        check = ctx.engine.check

        check(record, StatusSetRule({200}), "Status code is 200")
        check(record, ResponseTimeRule(ctx.config.max_response_time_ms),
              f"Response time under {ctx.config.max_response_time_ms}ms")
        check(record, ContentTypeRule("application/json"), "Content-Type is application/json")
        check(record, WellFormedJsonRule(), "Body is valid JSON")
        check(record, NonEmptyBodyRule(), "Body is not empty")
        check(record, FieldPresentRule("data.token"), "Auth token returned")
        check(record, FieldPresentRule("data.user._id"), "User id returned")
        check(record, FieldEqualsRule("data.user.email", email, ignore_case=True), "Email matches login email")
        check(record, FieldPresentRule("data.user.first_name"), "User name returned")
        check(record, FieldPresentRule("message"), "Success message returned")
        check(
            record,
            AllOfRule(
                (FieldPresentRule("data.token"), FieldPresentRule("data.user._id"), FieldPresentRule("data.user.email")),
                label="required_fields",
            ),
            "Required fields present (token, user id, email)",
        )
        check(record, LOGIN_SUCCESS, "Login successful")
        check(
            record,
            AllOfRule((FieldPresentRule("data"), FieldPresentRule("data.user")), label="structure"),
            "Response contains data.user",
        )
        check(record, FieldAbsentRule("error"), "No error message")


class InvalidEmailScenario(AbstractScenario):
    suite = "login"

    @property
    def name(self) -> str:
        return "login_invalid_email"

    @property
    def description(self) -> str:
        return "Login is rejected for an unknown email"

    def run(self, ctx: ScenarioContext) -> None:
        password = ctx.config.test_password or "SomePassword123"
        record = ctx.workflow.send_unauthenticated(
            lambda b: login_request(b, INVALID_EMAIL, password, ctx.config.application_type)
        )
        ctx.log_response(record)
        ctx.engine.check(record, StatusSetRule({400, 401, 404}), "Unknown email rejected")
        ctx.engine.check(record, FieldAbsentRule("data.token"), "No token issued")


class InvalidPasswordScenario(AbstractScenario):
    suite = "login"

    @property
    def name(self) -> str:
        return "login_invalid_password"

    @property
    def description(self) -> str:
        return "Login is rejected for a wrong password"

    def run(self, ctx: ScenarioContext) -> None:
        email = ctx.config.test_email or ctx.generator.faker.email()
        record = ctx.workflow.send_unauthenticated(
            lambda b: login_request(b, email, "WrongPassword123!", ctx.config.application_type)
        )
        ctx.log_response(record)
        ctx.engine.check(record, StatusSetRule({400, 401}), "Wrong password rejected")
        ctx.engine.check(record, NotRule(LOGIN_SUCCESS), "Login not successful")


class MissingEmailScenario(AbstractScenario):
    suite = "login"

    @property
    def name(self) -> str:
        return "login_missing_email"

    @property
    def description(self) -> str:
        return "Login fails when the email is missing"

    def run(self, ctx: ScenarioContext) -> None:
        record = ctx.workflow.send_unauthenticated(
            lambda b: login_request(b, None, ctx.config.test_password or "SomePassword123", ctx.config.application_type)
        )
        ctx.log_response(record)
        ctx.engine.check(record, StatusRangeRule(400, 600), "Missing email rejected")


class EmptyCredentialsScenario(AbstractScenario):
    suite = "login"

    @property
    def name(self) -> str:
        return "login_empty_credentials"

    @property
    def description(self) -> str:
        return "Login fails with empty email and password"

    def run(self, ctx: ScenarioContext) -> None:
        record = ctx.workflow.send_unauthenticated(
            lambda b: login_request(b, "", "", ctx.config.application_type)
        )
        ctx.log_response(record)
        ctx.engine.check(record, StatusRangeRule(400, 600), "Empty credentials rejected")
        ctx.engine.check(record, NotRule(LOGIN_SUCCESS), "Login not successful")


class ApplicationTypesScenario(AbstractScenario):
    suite = "login"

    @property
    def name(self) -> str:
        return "login_application_types"

    @property
    def description(self) -> str:
        return "Login works for the web application type; other types are reported"

    def run(self, ctx: ScenarioContext) -> None:
        ctx.config.require_credentials()
        for app_type in APPLICATION_TYPES:
            record = ctx.workflow.send_unauthenticated(
                lambda b: login_request(b, ctx.config.test_email, ctx.config.test_password, app_type)
            )
            ctx.info(f"application_type={app_type} → status {record.status_code}")
            if app_type == "web":
                ctx.engine.check(record, StatusSetRule({200}), "Web login succeeds")
            else:
                # Informational only; the API may restrict non-web clients
                ctx.info(f"{app_type} login {'accepted' if record.status_code == 200 else 'rejected'}")
