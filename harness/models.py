# harness/models.py
"""
Shared value types for the order API harness.

Everything here is a plain dataclass or enum: sessions, request specs,
response snapshots, the synthetic entities sent to the order endpoint and
the outcomes produced by the validation engine.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, asdict
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Tuple


class AuthMode(str, Enum):
    """How a request authenticates."""
    NONE = "none"
    BEARER = "bearer"


class ErrorKind(str, Enum):
    """Error categories shared by exceptions and validation outcomes."""
    TRANSPORT = "TRANSPORT"
    MALFORMED_RESPONSE = "MALFORMED_RESPONSE"
    INVALID_STATE = "INVALID_STATE"
    VALIDATION = "VALIDATION"
    CONFIGURATION = "CONFIGURATION"


# ==================== Session ====================

@dataclass(frozen=True)
class Session:
    """Authentication state owned by a single workflow."""
    auth_token: Optional[str] = None
    user_id: Optional[str] = None
    application_type: str = "web"

    def __post_init__(self):
        if (self.auth_token is None) != (self.user_id is None):
            raise ValueError("auth_token and user_id must be set together")

    @property
    def is_authenticated(self) -> bool:
        return self.auth_token is not None


# ==================== Wire Types ====================

@dataclass(frozen=True)
class RequestSpec:
    """Fully built request, ready to hand to ApiClient."""
    method: str
    path_template: str
    path_params: Tuple[Tuple[str, str], ...] = ()
    headers: Tuple[Tuple[str, str], ...] = ()
    auth_mode: AuthMode = AuthMode.NONE
    body: Any = None
    path: str = ""

    def header(self, name: str) -> Optional[str]:
        """Case-insensitive header lookup (last wins)."""
        wanted = name.lower()
        value = None
        for key, val in self.headers:
            if key.lower() == wanted:
                value = val
        return value

    def headers_dict(self) -> Dict[str, str]:
        return {k: v for k, v in self.headers}

    def header_names(self) -> List[str]:
        return [k for k, _ in self.headers]


@dataclass(frozen=True)
class ResponseRecord:
    """Immutable snapshot of one HTTP exchange."""
    status_code: int
    headers: Tuple[Tuple[str, str], ...] = ()
    body: bytes = b""
    elapsed_millis: int = 0
    method: str = ""
    url: str = ""

    @property
    def text(self) -> str:
        return self.body.decode("utf-8", errors="replace")

    def header(self, name: str) -> Optional[str]:
        wanted = name.lower()
        for key, val in self.headers:
            if key.lower() == wanted:
                return val
        return None

    @property
    def content_type(self) -> Optional[str]:
        return self.header("content-type")

    @classmethod
    def from_json(
        cls,
        status_code: int,
        payload: Any,
        headers: Optional[Dict[str, str]] = None,
        elapsed_millis: int = 0,
    ) -> "ResponseRecord":
        """Convenience constructor used by scenarios and tests."""
        hdrs = {"content-type": "application/json"}
        hdrs.update(headers or {})
        return cls(
            status_code=status_code,
            headers=tuple(hdrs.items()),
            body=json.dumps(payload).encode("utf-8"),
            elapsed_millis=elapsed_millis,
        )


# ==================== Entities ====================

@dataclass(frozen=True)
class Address:
    line1: str
    city: str
    state: str
    zip: str

    def to_payload(self) -> Dict[str, str]:
        return {
            "address_line_1": self.line1,
            "city": self.city,
            "state": self.state,
            "zip": self.zip,
        }

    def one_line(self) -> str:
        return f"{self.line1} {self.city} {self.state} {self.zip}"


@dataclass(frozen=True)
class TubeSpec:
    name: str
    count: int

    def to_payload(self) -> Dict[str, Any]:
        return {"tube_name": self.name, "tube_count": self.count}


@dataclass(frozen=True)
class PatientData:
    first: str
    last: str
    dob: str
    gender: str
    email: str
    phone: str
    homebound: bool = False
    ethnicity: str = ""
    race: str = ""
    hardstick: bool = False
    addresses: Tuple[Address, ...] = ()

    @property
    def full_name(self) -> str:
        return f"{self.first} {self.last}"

    def to_payload(self) -> Dict[str, Any]:
        return {
            "first_name": self.first,
            "last_name": self.last,
            "date_of_birth": self.dob,
            "gender": self.gender,
            "email": self.email,
            "mobile_number1": self.phone,
            "homebound": self.homebound,
            "ethnicity": self.ethnicity,
            "race": self.race,
            "hardstick": self.hardstick,
            "addresses": [a.to_payload() for a in self.addresses],
        }


@dataclass(frozen=True)
class OrderRequest:
    """Body of POST /orders/saveOrder."""
    order_type: str
    facility_account: str
    physician_npi: str
    patient_data: Optional[PatientData]
    services: Tuple[str, ...] = ()
    order_codes: Tuple[str, ...] = ()
    icd10_codes: Tuple[str, ...] = ()
    standing_start: str = ""
    standing_end: str = ""
    frequency: str = ""
    date_of_service: str = ""
    service_address: Optional[Address] = None
    billing_type: str = ""
    is_stat: bool = False
    fasting: bool = False
    tube_data: Tuple[TubeSpec, ...] = ()
    service_address_string: str = ""

    def to_payload(self) -> Dict[str, Any]:
        return {
            "order_type": self.order_type,
            "facility_account_number": self.facility_account,
            "physician_npi": self.physician_npi,
            "patient_data": self.patient_data.to_payload() if self.patient_data else {},
            "services": list(self.services),
            "order_codes": list(self.order_codes),
            "icd_10_codes": list(self.icd10_codes),
            "standing_start_date": self.standing_start,
            "standing_end_date": self.standing_end,
            "standing_frequency": self.frequency,
            "date_of_service": self.date_of_service,
            "appointment_time": "",
            "service_address": self.service_address.to_payload() if self.service_address else {},
            "billing_type": self.billing_type,
            "is_stat": self.is_stat,
            "fasting": self.fasting,
            "tube_data": [t.to_payload() for t in self.tube_data],
            "service_address_string": self.service_address_string,
        }

    def without(self, *wire_fields: str) -> Dict[str, Any]:
        """Payload with the given wire keys dropped (missing-field requests)."""
        payload = self.to_payload()
        for name in wire_fields:
            payload.pop(name, None)
        return payload


# ==================== Validation ====================

@dataclass(frozen=True)
class ValidationOutcome:
    """Result of classifying one response against one rule."""
    passed: bool
    reason_code: Optional[ErrorKind] = None
    detail: str = ""
    rule_name: str = ""
    expected: Any = None
    actual: Any = None

    def to_dict(self) -> Dict[str, Any]:
        out = asdict(self)
        out["reason_code"] = self.reason_code.value if self.reason_code else None
        return out


def as_header_tuple(headers: Iterable[Tuple[str, str]]) -> Tuple[Tuple[str, str], ...]:
    return tuple((str(k), str(v)) for k, v in headers)
