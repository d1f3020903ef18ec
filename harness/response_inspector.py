# harness/response_inspector.py
"""
Response Inspector

Field extraction over a ResponseRecord body using dotted JSON paths:

    data.user._id
    data.orders[0].order_id      (bracket index)
    data.orders.0.order_id       (bare numeric segment)
    $.data.token                 (optional root marker)

Absent fields return None; only a body that is not valid JSON raises
MalformedResponseError, and only from extract(). The domain accessors
(order_id(), auth_token(), ...) go through get(), which maps a malformed
body to None as well.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Dict, List, Optional

from harness.errors import MalformedResponseError
from harness.models import ResponseRecord

logger = logging.getLogger(__name__)

_INDEX_RE = re.compile(r"\[(-?\d+)\]")
_MISSING = object()


def parse_path(path: str) -> List[Any]:
    """
    Split a dotted path into tokens. Bracket indices become ints and always
    index a list; bare segments stay strings and are resolved against
    whatever container the walk reaches (dict key, or list index when
    numeric).
    """
    p = path.strip()
    if p.startswith("$"):
        p = p[1:]
    p = p.lstrip(".")
    if not p:
        return []

    tokens: List[Any] = []
    for segment in p.split("."):
        if not segment:
            continue
        bracket = segment.find("[")
        name = segment if bracket < 0 else segment[:bracket]
        if name:
            tokens.append(name)
        if bracket >= 0:
            tokens.extend(int(i) for i in _INDEX_RE.findall(segment[bracket:]))
    return tokens


def extract_path(data: Any, path: str) -> Any:
    """Walk parsed JSON; returns None when any segment is absent."""
    cur = data
    for tok in parse_path(path):
        if isinstance(tok, int):
            if not isinstance(cur, list) or tok < 0 or tok >= len(cur):
                return None
            cur = cur[tok]
        elif isinstance(cur, dict):
            if tok not in cur:
                return None
            cur = cur[tok]
        elif isinstance(cur, list) and tok.isdigit():
            idx = int(tok)
            if idx >= len(cur):
                return None
            cur = cur[idx]
        else:
            return None
    return cur


class ResponseInspector:
    """Read-only view over one ResponseRecord"""

    def __init__(self, record: ResponseRecord):
        self.record = record
        self._parsed: Any = _MISSING
        self._parse_error: Optional[str] = None

    # ==================== Parsing ====================

    def _data(self) -> Any:
        if self._parsed is _MISSING and self._parse_error is None:
            body = self.record.body
            if not body.strip():
                self._parsed = None
            else:
                # bytes, not .text: invalid UTF-8 is malformed
                try:
                    self._parsed = json.loads(body)
                except ValueError as e:
                    self._parse_error = str(e)
        if self._parse_error is not None:
            raise MalformedResponseError(self._parse_error)
        return self._parsed

    def json(self) -> Any:
        """Whole parsed body (None for an empty body)."""
        return self._data()

    def is_well_formed_json(self) -> bool:
        try:
            json.loads(self.record.body)
            return True
        except ValueError:
            return False

    # ==================== Extraction ====================

    def extract(self, path: str) -> Any:
        return extract_path(self._data(), path)

    def get(self, path: str) -> Any:
        try:
            return self.extract(path)
        except MalformedResponseError:
            logger.debug(f"get({path}) on non-JSON body from {self.record.url or 'response'}")
            return None

    def extract_str(self, path: str) -> Optional[str]:
        value = self.get(path)
        if value is None:
            return None
        if isinstance(value, bool):
            return str(value).lower()
        if isinstance(value, (dict, list)):
            return json.dumps(value)
        return str(value)

    def extract_int(self, path: str) -> Optional[int]:
        value = self.get(path)
        if isinstance(value, bool) or value is None:
            return None
        try:
            return int(value)
        except (TypeError, ValueError):
            return None

    def extract_list(self, path: str) -> Optional[List[Any]]:
        value = self.get(path)
        return value if isinstance(value, list) else None

    def has_field(self, path: str) -> bool:
        return self.get(path) is not None

    # ==================== Orders ====================

    def order_id(self) -> Optional[str]:
        """
        First order id. Standing orders come back as data.orders[], one-off
        orders as data.order_id; both shapes are accepted.
        """
        orders = self.get("data.orders")
        if isinstance(orders, list) and orders:
            return self.extract_str("data.orders[0].order_id")
        return self.extract_str("data.order_id")

    def all_order_ids(self) -> List[str]:
        orders = self.get("data.orders")
        if not isinstance(orders, list):
            return []
        ids: List[str] = []
        for entry in orders:
            value = entry.get("order_id") if isinstance(entry, dict) else None
            if value is not None and str(value) != "":
                ids.append(str(value))
        return ids

    # ==================== Login / User ====================

    def auth_token(self) -> Optional[str]:
        return self.extract_str("data.token")

    def user_id(self) -> Optional[str]:
        return self.extract_str("data.user._id")

    def user_email(self) -> Optional[str]:
        return self.extract_str("data.user.email")

    def user_name(self) -> Optional[str]:
        first = self.extract_str("data.user.first_name")
        last = self.extract_str("data.user.last_name")
        if first is None and last is None:
            return None
        return " ".join(p for p in (first, last) if p)

    # ==================== Messages ====================

    def message(self) -> Optional[str]:
        return self.extract_str("message")

    def error(self) -> Optional[str]:
        return self.extract_str("error")

    def error_message(self) -> Optional[str]:
        """message, then error, then the serialized errors collection."""
        for path in ("message", "error", "errors"):
            value = self.extract_str(path)
            if value is not None:
                return value
        return None

    def error_details(self) -> Dict[str, Any]:
        return {
            "status_code": self.record.status_code,
            "message": self.message(),
            "error": self.error(),
            "errors": self.get("errors"),
            "response_body": self.record.text,
        }

    # ==================== Wire ====================

    def status_code(self) -> int:
        return self.record.status_code

    def content_type(self) -> Optional[str]:
        return self.record.content_type

    def is_json_content(self) -> bool:
        return "application/json" in (self.content_type() or "").lower()

    def header(self, name: str) -> Optional[str]:
        return self.record.header(name)

    def body_size(self) -> int:
        return len(self.record.body)

    def elapsed_millis(self) -> int:
        return self.record.elapsed_millis
