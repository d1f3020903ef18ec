# harness/scenarios/user_flow.py
"""
Multi-call flow: login → token → GET /users/{userId} → user details.
"""

from __future__ import annotations

import logging

from harness.scenarios.base import AbstractScenario, ScenarioContext
from harness.validation import FieldEqualsRule, FieldPresentRule, StatusSetRule

logger = logging.getLogger(__name__)


class LoginThenGetUserScenario(AbstractScenario):
    suite = "user"

    @property
    def name(self) -> str:
        return "user_details_flow"

    @property
    def description(self) -> str:
        return "Login, then fetch the logged-in user with the issued token"

    def run(self, ctx: ScenarioContext) -> None:
        ctx.info("STEP 1: Login to get an auth token")
        session = ctx.login()
        ctx.engine.check(ctx.workflow.last_login_response, StatusSetRule({200}), "Login succeeds")
        ctx.engine.expect(session.auth_token is not None, "Auth token present", "not null", session.auth_token)
        ctx.engine.expect(session.user_id is not None, "User id present", "not null", session.user_id)

        ctx.info("STEP 2: Fetch user details with the token")
        record = ctx.workflow.get_user()
        ctx.log_response(record)
        ctx.engine.check(record, StatusSetRule({200}), "Get user succeeds")

        inspector = ctx.inspect(record)
        ctx.info(
            f"User: {inspector.extract_str('data.user.first_name')} "
            f"<{inspector.extract_str('data.user.email')}> "
            f"phone {inspector.extract_str('data.user.phone')}"
        )
        ctx.engine.check(record, FieldPresentRule("data.user.first_name"), "First name returned")
        ctx.engine.check(
            record,
            FieldEqualsRule("data.user.email", ctx.config.test_email, ignore_case=True),
            "Email matches login email",
        )
