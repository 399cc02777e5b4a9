"""
Service wiring: build the store, payment gateway and use-case services.

Why:
    The store is a process-wide resource with an explicit open/close
    lifecycle. Building it here (instead of at import time) lets the app
    factory and tests inject their own instances.
"""
from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Optional

from backend.payments.gateway import PaymentGateway, PaymentGatewayError, PaymentIntent
from backend.payments.stripe_client import StripePaymentGateway
from backend.storage.documents import DocumentStore
from backend.storage.memory import MemoryDocumentStore
from backend.storage.postgres import PostgresDocumentStore
from backend.teaching.services.assignments import AssignmentsService
from backend.teaching.services.classes import ClassesService
from backend.teaching.services.enrollments import EnrollmentsService
from backend.teaching.services.feedback import FeedbackService
from backend.teaching.services.payments import PaymentsService
from backend.teaching.services.stats import StatsService
from backend.teaching.services.teacher_requests import TeacherRequestsService
from backend.teaching.services.users import UsersService

from .config import AppConfig

logger = logging.getLogger("edumanage.web")


class UnconfiguredPaymentGateway:
    """Placeholder used when no processor key is configured (dev only)."""

    def create_intent(self, *, amount, currency, metadata) -> PaymentIntent:
        raise PaymentGatewayError("payments_not_configured")

    def retrieve_intent(self, intent_id: str) -> PaymentIntent:
        raise PaymentGatewayError("payments_not_configured")


def build_store(config: AppConfig) -> DocumentStore:
    if config.store_backend == "memory":
        logger.info("using in-memory document store")
        return MemoryDocumentStore()
    if config.store_backend != "postgres":
        raise SystemExit(f"Refusing to start: unknown STORE_BACKEND={config.store_backend!r}")
    return PostgresDocumentStore(
        config.database_url,
        min_size=config.store_pool_min,
        max_size=config.store_pool_max,
        statement_timeout_ms=config.store_statement_timeout_ms,
    )


def build_gateway(config: AppConfig) -> PaymentGateway:
    if not config.payments_api_key:
        logger.warning("PAYMENTS_API_KEY not set; payment endpoints will fail")
        return UnconfiguredPaymentGateway()
    return StripePaymentGateway(
        config.payments_api_key,
        api_base=config.payments_api_base,
        timeout=config.payments_timeout_seconds,
    )


@dataclass
class Services:
    store: DocumentStore
    users: UsersService
    classes: ClassesService
    enrollments: EnrollmentsService
    teacher_requests: TeacherRequestsService
    assignments: AssignmentsService
    feedback: FeedbackService
    payments: PaymentsService
    stats: StatsService


def build_services(
    config: AppConfig,
    *,
    store: Optional[DocumentStore] = None,
    gateway: Optional[PaymentGateway] = None,
) -> Services:
    store = store if store is not None else build_store(config)
    gateway = gateway if gateway is not None else build_gateway(config)
    return Services(
        store=store,
        users=UsersService(store),
        classes=ClassesService(store),
        enrollments=EnrollmentsService(store),
        teacher_requests=TeacherRequestsService(store),
        assignments=AssignmentsService(store),
        feedback=FeedbackService(store),
        payments=PaymentsService(store, gateway, currency=config.payments_currency),
        stats=StatsService(store),
    )
