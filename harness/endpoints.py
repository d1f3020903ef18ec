# harness/endpoints.py
"""
Endpoint helpers: free functions that turn domain values into RequestSpecs
for the three API calls the harness drives.
"""

from __future__ import annotations

from typing import Any, Dict, Optional, Union

from harness.models import OrderRequest, RequestSpec
from harness.request_builder import GET_USER, LOGIN, SAVE_ORDER, RequestBuilder

OrderBody = Union[OrderRequest, Dict[str, Any]]


def login_request(
    builder: RequestBuilder,
    email: Optional[str],
    password: Optional[str],
    application_type: str = "web",
) -> RequestSpec:
    # None values are sent as JSON null for missing-credential checks
    body = {"email": email, "password": password, "application_type": application_type}
    return builder.build(LOGIN, body=body)


def get_user_request(builder: RequestBuilder, token: Optional[str], user_id: str) -> RequestSpec:
    return builder.build(GET_USER, path_params={"userId": user_id}, token=token)


def save_order_request(
    builder: RequestBuilder,
    token: Optional[str],
    user_id: Optional[str],
    order: OrderBody,
) -> RequestSpec:
    """POST /orders/saveOrder; raw dict bodies are sent as-is for malformed-input checks."""
    body = order.to_payload() if isinstance(order, OrderRequest) else order
    headers = {"user_id": user_id} if user_id else None
    return builder.build(SAVE_ORDER, headers=headers, token=token, body=body)
