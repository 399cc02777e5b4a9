"""Paid enrollment: payment intents and server-side confirmation.

Why:
    The client completes the card flow with the processor, but the server
    never trusts a client-asserted success. `confirm` retrieves the intent
    again and checks status, amount, class and payer before recording the
    payment and the enrollment together.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import List

from backend.identity_access.domain import Identity
from backend.payments.gateway import PaymentGateway, PaymentGatewayError, PaymentIntent
from backend.storage.documents import DocumentStore, DuplicateKeyError, now_iso
from backend.teaching.errors import ConflictError, NotFoundError, UpstreamError, ValidationError

from .common import require_email, require_id
from .enrollments import insert_enrollment

logger = logging.getLogger("edumanage.teaching.payments")


def amount_in_cents(price: object) -> int:
    if isinstance(price, bool) or not isinstance(price, (int, float)) or price <= 0:
        raise ValidationError("invalid_price", "Class has no valid price")
    return int(round(price * 100))


@dataclass
class PaymentsService:
    store: DocumentStore
    gateway: PaymentGateway
    currency: str = "usd"

    def _approved_class(self, class_id: str) -> dict:
        cid = require_id(class_id, detail="invalid_class_id", message="Invalid class ID")
        cls = self.store.collection("classes").find_one({"_id": cid})
        if not cls:
            raise NotFoundError("class_not_found", "Class not found")
        if cls.get("status") != "approved":
            raise ValidationError("class_not_approved", "Class is not open for enrollment")
        return cls

    def _call(self, fn, *args, **kwargs) -> PaymentIntent:
        try:
            return fn(*args, **kwargs)
        except PaymentGatewayError as exc:
            logger.error("payment processor failure: code=%s", exc.code)
            raise UpstreamError("payment_processor_error", "Payment processor unavailable") from exc

    def create_intent(self, identity: Identity, class_id: str) -> dict:
        email = require_email(identity)
        cls = self._approved_class(class_id)
        if self.store.collection("enrollments").find_one({"classId": cls["_id"], "email": email}):
            raise ConflictError("already_enrolled", "Already enrolled in this class")
        amount = amount_in_cents(cls.get("price"))
        intent = self._call(
            self.gateway.create_intent,
            amount=amount,
            currency=self.currency,
            metadata={"classId": cls["_id"], "email": email},
        )
        logger.info("payment intent created class=%s amount=%s", cls["_id"], amount)
        return {"clientSecret": intent.client_secret, "paymentIntentId": intent.id, "amount": amount}

    def confirm(self, identity: Identity, class_id: str, payment_intent_id: object) -> dict:
        """Verify the intent with the processor, then record payment and enrollment.

        Both inserts run in one transaction; a replayed intent id hits the
        unique `transactionId` key and reports ConflictError.
        """
        email = require_email(identity)
        if not isinstance(payment_intent_id, str) or not payment_intent_id.strip():
            raise ValidationError("payment_intent_required", "paymentIntentId is required")
        cls = self._approved_class(class_id)
        intent = self._call(self.gateway.retrieve_intent, payment_intent_id.strip())
        if not intent.succeeded:
            raise ValidationError("payment_not_succeeded", "Payment has not succeeded")
        expected = amount_in_cents(cls.get("price"))
        if intent.amount != expected:
            raise ValidationError("payment_amount_mismatch", "Payment amount does not match class price")
        if intent.metadata.get("classId") != cls["_id"]:
            raise ValidationError("payment_class_mismatch", "Payment does not belong to this class")
        if intent.metadata.get("email") not in (None, email):
            raise ValidationError("payment_payer_mismatch", "Payment does not belong to this user")
        payment = {
            "amount": intent.amount,
            "currency": intent.currency or self.currency,
            "email": email,
            "classId": cls["_id"],
            "transactionId": intent.id,
            "paidAt": now_iso(),
        }
        with self.store.transaction() as session:
            try:
                payment["_id"] = session.collection("payments").insert_one(payment)
            except DuplicateKeyError as exc:
                raise ConflictError("payment_already_recorded", "Payment already recorded") from exc
            enrollment = insert_enrollment(session, cls["_id"], email, payment_id=payment["_id"])
        logger.info("payment confirmed class=%s payment=%s", cls["_id"], payment["_id"])
        return {"payment": payment, "enrollment": enrollment}

    def list_payments(self, identity: Identity) -> List[dict]:
        email = require_email(identity)
        return self.store.collection("payments").find({"email": email}, sort=("paidAt", -1))
