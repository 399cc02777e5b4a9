"""Payment API: intent, server-verified confirm, history."""
from __future__ import annotations

import pytest

from backend.tests.utils.identities import headers_for

pytestmark = pytest.mark.anyio

TEACHER_H = headers_for("t@x.com", "teacher")
ADMIN_H = headers_for("admin@x.com", "admin")
STUDENT_H = headers_for("s@x.com", "student")


async def _approved_class(client, price=20) -> str:
    r = await client.post(
        "/classes",
        json={"title": "Algebra", "price": price, "description": "intro", "image": "http://x/img.png"},
        headers=TEACHER_H,
    )
    cid = r.json()["id"]
    await client.patch(f"/classes/{cid}/status", json={"status": "approved"}, headers=ADMIN_H)
    return cid


async def test_paid_enrollment_flow(client, gateway):
    cid = await _approved_class(client)

    r = await client.post("/payments/create-intent", json={"classId": cid}, headers=STUDENT_H)
    assert r.status_code == 200
    body = r.json()
    assert body["amount"] == 2000
    assert body["clientSecret"]
    pid = body["paymentIntentId"]

    # Client claims success before the processor agrees
    r = await client.post("/payments/confirm", json={"classId": cid, "paymentIntentId": pid}, headers=STUDENT_H)
    assert r.status_code == 400
    assert r.json()["detail"] == "payment_not_succeeded"

    gateway.mark_succeeded(pid)
    r = await client.post("/payments/confirm", json={"classId": cid, "paymentIntentId": pid}, headers=STUDENT_H)
    assert r.status_code == 201
    assert r.json()["enrollmentId"]

    enrollments = (await client.get("/enrollments", headers=STUDENT_H)).json()
    assert enrollments[0]["paymentId"] == r.json()["paymentId"]

    history = (await client.get("/payments", headers=STUDENT_H)).json()
    assert [p["transactionId"] for p in history] == [pid]


async def test_intent_for_pending_class_rejected(client):
    r = await client.post(
        "/classes",
        json={"title": "Algebra", "price": 20, "description": "intro", "image": "http://x/img.png"},
        headers=TEACHER_H,
    )
    cid = r.json()["id"]
    r = await client.post("/payments/create-intent", json={"classId": cid}, headers=STUDENT_H)
    assert r.status_code == 400
    assert r.json()["detail"] == "class_not_approved"


async def test_processor_outage_is_500(client, gateway):
    cid = await _approved_class(client)
    gateway.fail = True
    r = await client.post("/payments/create-intent", json={"classId": cid}, headers=STUDENT_H)
    assert r.status_code == 500
    assert r.json()["error"] == "upstream_error"
