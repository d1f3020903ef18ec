# harness/scenarios/__init__.py
"""
Scenario Registry

Plugin-style registry of every scenario the runner can execute, keyed by
scenario name and grouped into suites.
"""

from typing import Dict, List, Optional, Type

from harness.scenarios.base import AbstractScenario, ScenarioContext, ScenarioResult
from harness.scenarios.login import (
    ApplicationTypesScenario,
    EmptyCredentialsScenario,
    InvalidEmailScenario,
    InvalidPasswordScenario,
    MissingEmailScenario,
    ValidLoginScenario,
)
from harness.scenarios.orders import (
    MISSING_FIELD_SCENARIOS,
    FarFutureDateScenario,
    InvalidAuthTokenScenario,
    InvalidDateFormatScenario,
    InvalidFacilityScenario,
    InvalidIcd10Scenario,
    InvalidNpiScenario,
    MissingRequiredFieldsScenario,
    PastDateScenario,
    StandingOrderValidScenario,
)
from harness.scenarios.user_flow import LoginThenGetUserScenario


SCENARIO_REGISTRY: Dict[str, Type[AbstractScenario]] = {
    "login_valid": ValidLoginScenario,
    "login_invalid_email": InvalidEmailScenario,
    "login_invalid_password": InvalidPasswordScenario,
    "login_missing_email": MissingEmailScenario,
    "login_empty_credentials": EmptyCredentialsScenario,
    "login_application_types": ApplicationTypesScenario,
    "user_details_flow": LoginThenGetUserScenario,
    "order_standing_valid": StandingOrderValidScenario,
    "order_invalid_auth_token": InvalidAuthTokenScenario,
    "order_missing_required_fields": MissingRequiredFieldsScenario,
    "order_invalid_date_format": InvalidDateFormatScenario,
    "order_past_date": PastDateScenario,
    "order_far_future_date": FarFutureDateScenario,
    "order_invalid_icd10": InvalidIcd10Scenario,
    "order_invalid_facility": InvalidFacilityScenario,
    "order_invalid_npi": InvalidNpiScenario,
}
SCENARIO_REGISTRY.update(MISSING_FIELD_SCENARIOS)


def get_suites() -> Dict[str, List[str]]:
    """Scenario names grouped by suite."""
    suites: Dict[str, List[str]] = {}
    for name, cls in SCENARIO_REGISTRY.items():
        suites.setdefault(cls.suite, []).append(name)
    return suites


def validate_scenario_names(names: List[str]) -> tuple[List[str], List[str]]:
    """
    Validate names against the registry. Suite names expand to their members.

    Returns:
        Tuple of (valid_names, invalid_names)
    """
    suites = get_suites()
    valid: List[str] = []
    invalid: List[str] = []

    for name in names:
        if name in SCENARIO_REGISTRY:
            valid.append(name)
        elif name in suites:
            valid.extend(suites[name])
        else:
            invalid.append(name)

    return list(dict.fromkeys(valid)), invalid


def get_scenarios(names: Optional[List[str]] = None) -> List[AbstractScenario]:
    """
    Instantiate scenarios by name (or suite); all scenarios when names is None.

    Raises:
        KeyError: if any name is unknown
    """
    if names is None:
        return [cls() for cls in SCENARIO_REGISTRY.values()]

    valid, invalid = validate_scenario_names(names)
    if invalid:
        raise KeyError(f"Unknown scenario(s): {', '.join(invalid)}")
    return [SCENARIO_REGISTRY[name]() for name in valid]


__all__ = [
    "AbstractScenario",
    "ScenarioContext",
    "ScenarioResult",
    "SCENARIO_REGISTRY",
    "get_scenarios",
    "get_suites",
    "validate_scenario_names",
]
