"""
Stripe-compatible payment intents client.

Design:
- Framework-agnostic; uses requests with explicit timeouts.
- Form-encoded bodies, nested metadata as `metadata[key]=value`.
- Every failure surfaces as `PaymentGatewayError`; callers decide how to report it.

Security:
- Never log the API key, client secrets or response bodies.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Mapping
from urllib.parse import quote

import requests

from .gateway import PaymentGatewayError, PaymentIntent

logger = logging.getLogger("edumanage.payments")

DEFAULT_API_BASE = "https://api.stripe.com"


def _intent_from_json(data: Mapping[str, Any]) -> PaymentIntent:
    try:
        return PaymentIntent(
            id=str(data["id"]),
            amount=int(data["amount"]),
            currency=str(data.get("currency") or ""),
            status=str(data.get("status") or ""),
            client_secret=data.get("client_secret"),
            metadata={str(k): str(v) for k, v in (data.get("metadata") or {}).items()},
        )
    except (KeyError, TypeError, ValueError) as exc:
        raise PaymentGatewayError("malformed_response") from exc


class StripePaymentGateway:
    def __init__(self, api_key: str, *, api_base: str = DEFAULT_API_BASE, timeout: float = 10.0) -> None:
        if not api_key:
            raise ValueError("payments api key is required")
        self._api_key = api_key
        self.api_base = api_base.rstrip("/")
        self.timeout = float(timeout)

    def _headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self._api_key}"}

    def _request(self, method: str, path: str, *, data: Mapping[str, Any] | None = None) -> PaymentIntent:
        url = f"{self.api_base}{path}"
        try:
            r = requests.request(method, url, headers=self._headers(), data=data, timeout=self.timeout)
        except requests.RequestException as exc:
            logger.warning("payments request failed: method=%s error=%s", method, type(exc).__name__)
            raise PaymentGatewayError("processor_unreachable") from exc
        if r.status_code >= 400:
            logger.warning("payments request rejected: method=%s status=%s", method, r.status_code)
            raise PaymentGatewayError("processor_error", r.status_code)
        try:
            body = r.json()
        except ValueError as exc:
            raise PaymentGatewayError("malformed_response", r.status_code) from exc
        return _intent_from_json(body or {})

    def create_intent(self, *, amount: int, currency: str, metadata: Mapping[str, str]) -> PaymentIntent:
        data: Dict[str, Any] = {
            "amount": int(amount),
            "currency": currency,
            "payment_method_types[]": "card",
        }
        for key, value in metadata.items():
            data[f"metadata[{key}]"] = value
        return self._request("POST", "/v1/payment_intents", data=data)

    def retrieve_intent(self, intent_id: str) -> PaymentIntent:
        return self._request("GET", f"/v1/payment_intents/{quote(intent_id, safe='')}")
