"""Assignments, submissions and feedback over HTTP."""
from __future__ import annotations

import pytest

from backend.tests.utils.identities import headers_for

pytestmark = pytest.mark.anyio

TEACHER_H = headers_for("t@x.com", "teacher")
STUDENT_H = headers_for("s@x.com", "student")


async def _class_with_student(client) -> str:
    r = await client.post(
        "/classes",
        json={"title": "Algebra", "price": 20, "description": "intro", "image": "http://x/img.png"},
        headers=TEACHER_H,
    )
    cid = r.json()["id"]
    await client.post(f"/enroll/{cid}", headers=STUDENT_H)
    return cid


async def test_assignment_flow(client):
    cid = await _class_with_student(client)

    r = await client.post(
        f"/classes/{cid}/assignments",
        json={"title": "Week 1", "description": "Exercises", "deadline": "2030-01-15T12:00:00Z"},
        headers=STUDENT_H,
    )
    assert r.status_code == 403

    r = await client.post(
        f"/classes/{cid}/assignments",
        json={"title": "Week 1", "description": "Exercises", "deadline": "2030-01-15T12:00:00Z"},
        headers=TEACHER_H,
    )
    assert r.status_code == 201
    aid = r.json()["id"]

    listed = await client.get(f"/classes/{cid}/assignments", headers=STUDENT_H)
    assert [a["_id"] for a in listed.json()] == [aid]

    r = await client.post(f"/assignments/{aid}/submissions", json={"submissionUrl": "https://x/s"}, headers=STUDENT_H)
    assert r.status_code == 201
    r = await client.post(f"/assignments/{aid}/submissions", json={"submissionUrl": "https://x/s"}, headers=STUDENT_H)
    assert r.status_code == 400
    assert r.json()["error"] == "conflict"

    listed = await client.get(f"/classes/{cid}/assignments", headers=TEACHER_H)
    assert listed.json()[0]["submissionCount"] == 1


async def test_feedback_flow(client):
    cid = await _class_with_student(client)

    outsider = headers_for("o@x.com", "student")
    r = await client.post("/feedback", json={"classId": cid, "rating": 4, "description": "Nice"}, headers=outsider)
    assert r.status_code == 403

    r = await client.post("/feedback", json={"classId": cid, "rating": 9, "description": "Nice"}, headers=STUDENT_H)
    assert r.status_code == 400
    assert r.json()["detail"] == "invalid_rating"

    r = await client.post("/feedback", json={"classId": cid, "rating": 4, "description": "Nice"}, headers=STUDENT_H)
    assert r.status_code == 201

    public = await client.get("/feedback")
    assert [f["rating"] for f in public.json()] == [4]
    assert (await client.get("/feedback", params={"limit": 0})).status_code == 400
