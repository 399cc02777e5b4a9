"""
Payment routes.

Flow: `create-intent` returns a client secret for the card form; after the
processor reports success the client calls `confirm`, which re-checks the
intent server-side before enrolling the caller.
"""
from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Request
from pydantic import BaseModel

from .security import current_identity, private_json, services

payments_router = APIRouter(tags=["Payments"])


class IntentCreate(BaseModel):
    classId: Any = None


class PaymentConfirm(BaseModel):
    classId: Any = None
    paymentIntentId: Any = None


@payments_router.post("/payments/create-intent")
def create_payment_intent(request: Request, payload: IntentCreate):
    body = services(request).payments.create_intent(current_identity(request), payload.classId)
    return private_json(body)


@payments_router.post("/payments/confirm")
def confirm_payment(request: Request, payload: PaymentConfirm):
    result = services(request).payments.confirm(
        current_identity(request), payload.classId, payload.paymentIntentId
    )
    return private_json(
        {
            "message": "Payment confirmed",
            "paymentId": result["payment"]["_id"],
            "enrollmentId": result["enrollment"]["_id"],
        },
        status_code=201,
    )


@payments_router.get("/payments")
def payment_history(request: Request):
    return private_json(services(request).payments.list_payments(current_identity(request)))
