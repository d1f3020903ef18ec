# harness/api_client.py
"""
API Client

Executes a built RequestSpec against the configured base URI:
- exactly one synchronous httpx call per send(), no retries
- bounded timeout from HarnessConfig.timeout_seconds
- status codes are data, not exceptions (4xx/5xx come back as records)
- transport failures (DNS, refused, timeout) raise TransportError
- sensitive headers are redacted before anything is logged
"""

from __future__ import annotations

import json
import logging
import time
from typing import Any, Dict, Optional

import httpx

from harness.config import HarnessConfig
from harness.errors import TransportError
from harness.models import RequestSpec, ResponseRecord, as_header_tuple

logger = logging.getLogger(__name__)

_SENSITIVE_KEYS = {
    "authorization", "x-api-key", "api_key", "apikey", "token",
    "access_token", "cookie", "set-cookie", "x-auth-token", "x-access-token",
    "password", "session", "jwt",
}

_LOG_BODY_LIMIT = 1000


def _redact_sensitive(data: Any) -> Any:
    """Recursively redact sensitive information"""
    if isinstance(data, dict):
        return {
            k: "[REDACTED]" if str(k).lower() in _SENSITIVE_KEYS else _redact_sensitive(v)
            for k, v in data.items()
        }
    if isinstance(data, list):
        return [_redact_sensitive(item) for item in data]
    return data


def _preview(text: str) -> str:
    return text if len(text) <= _LOG_BODY_LIMIT else text[:_LOG_BODY_LIMIT] + "..."


class ApiClient:
    """
    Synchronous single-shot HTTP client.

    One instance per scenario; records are returned to the caller and never
    kept here.
    """

    def __init__(
        self,
        config: HarnessConfig,
        transport: Optional[httpx.BaseTransport] = None,
        verify: bool = True,
    ):
        self.config = config
        self.base_url = config.base_uri.rstrip("/")
        self._client = httpx.Client(
            base_url=self.base_url,
            timeout=httpx.Timeout(config.timeout_seconds),
            transport=transport,
            verify=verify,
            follow_redirects=False,
        )

    # ==================== Context Manager ====================

    def __enter__(self) -> "ApiClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def close(self) -> None:
        self._client.close()

    # ==================== Public API ====================

    def url_for(self, spec: RequestSpec) -> str:
        return f"{self.base_url}/{spec.path.lstrip('/')}"

    def send(self, spec: RequestSpec) -> ResponseRecord:
        url = self.url_for(spec)
        logger.info(f"➡️ {spec.method} {url}")
        logger.debug(
            "Request headers=%s body=%s",
            _redact_sensitive(spec.headers_dict()),
            json.dumps(_redact_sensitive(spec.body), default=str) if spec.body is not None else None,
        )

        kwargs: Dict[str, Any] = {"headers": list(spec.headers)}
        if spec.body is not None:
            kwargs["json"] = spec.body

        t0 = time.perf_counter()
        try:
            resp = self._client.request(spec.method, spec.path, **kwargs)
        except httpx.TimeoutException as e:
            logger.error(f"⏱️ {spec.method} {url} timed out after {self.config.timeout_seconds}s")
            raise TransportError(spec.method, url, e) from e
        except (httpx.RequestError, httpx.InvalidURL) as e:
            logger.error(f"🔌 {spec.method} {url} transport failure: {e}")
            raise TransportError(spec.method, url, e) from e
        elapsed_ms = int((time.perf_counter() - t0) * 1000)

        record = ResponseRecord(
            status_code=resp.status_code,
            headers=as_header_tuple(resp.headers.items()),
            body=resp.content,
            elapsed_millis=elapsed_ms,
            method=spec.method,
            url=str(resp.request.url),
        )

        logger.info(f"⬅️ {spec.method} {url} → {record.status_code} ({elapsed_ms}ms)")
        logger.debug("Response body: %s", _preview(record.text))
        return record
