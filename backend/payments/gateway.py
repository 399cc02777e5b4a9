"""
Payment processor port.

Why:
    Payments are an external collaborator. Services depend on this protocol
    only; the REST client and the test fake both satisfy it.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Mapping, Optional, Protocol


class PaymentGatewayError(Exception):
    """Processor unreachable or answered with an error."""

    def __init__(self, code: str, status_code: Optional[int] = None) -> None:
        self.code = code
        self.status_code = status_code
        super().__init__(code if status_code is None else f"{code} (status={status_code})")


@dataclass(frozen=True)
class PaymentIntent:
    id: str
    amount: int
    currency: str
    status: str
    client_secret: Optional[str] = None
    metadata: Dict[str, str] = field(default_factory=dict)

    @property
    def succeeded(self) -> bool:
        return self.status == "succeeded"


class PaymentGateway(Protocol):
    def create_intent(self, *, amount: int, currency: str, metadata: Mapping[str, str]) -> PaymentIntent:
        ...

    def retrieve_intent(self, intent_id: str) -> PaymentIntent:
        ...
