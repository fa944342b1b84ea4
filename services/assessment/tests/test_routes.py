"""Tests for the take-test HTTP endpoints."""

import pytest
from sqlalchemy import text


async def _seed(authoring):
    test_id = await authoring.add_test("Geography")
    q1 = await authoring.add_question(["a", "c"], max_points=10, answers=["a", "b", "c"], test_id=test_id, type="multiple")
    q2 = await authoring.add_question(["b"], max_points=5, answers=["a", "b"], test_id=test_id, index=1)
    return test_id, q1, q2


def _body(test_id, choices):
    return {
        "test": test_id,
        "submit_time": "2024-05-01T09:30:00Z",
        "questions_order": [str(q) for q, _ in choices],
        "choose_answers": [{"question": q, "answers": a} for q, a in choices],
    }


@pytest.mark.asyncio
async def test_openapi_ok(client) -> None:
    """OpenAPI schema endpoint should respond with HTTP 200."""
    r = await client.get("/openapi.json")
    if r.status_code != 200:
        pytest.fail(f"Expected 200, got {r.status_code}")


@pytest.mark.asyncio
async def test_submit_then_read(client, authoring, auth) -> None:
    test_id, q1, q2 = await _seed(authoring)
    r = await client.post("/v1/submit", json=_body(test_id, [(q1, ["c", "a"]), (q2, ["a"])]), headers=auth("alice"))
    assert r.status_code == 201, r.text
    take_test_id = r.json()["take_test_id"]
    assert r.headers.get("X-Request-ID")

    r = await client.get(f"/v1/submit/{take_test_id}", headers=auth("alice"))
    assert r.status_code == 200
    data = r.json()
    assert data["user_id"] == "alice"
    assert data["points"] == 10
    assert data["is_correct"] == [True, False]
    assert data["status"] == "graded"
    assert data["choose_answers"][0]["question"]["max_points"] == 10

    r = await client.get("/v1/submit/user/alice", headers=auth("bob"))
    assert [a["id"] for a in r.json()] == [take_test_id]
    r = await client.get(f"/v1/submit/test/{test_id}", headers=auth("bob"))
    assert [a["points"] for a in r.json()] == [10]


@pytest.mark.asyncio
async def test_request_id_is_echoed(client) -> None:
    r = await client.get("/health", headers={"X-Request-ID": "rid-123"})
    assert r.json() == {"status": "ok"}
    assert r.headers["X-Request-ID"] == "rid-123"


@pytest.mark.asyncio
async def test_missing_token_is_rejected(client, authoring) -> None:
    test_id, q1, _ = await _seed(authoring)
    r = await client.post("/v1/submit", json=_body(test_id, [(q1, ["a"])]))
    assert r.status_code == 401


@pytest.mark.asyncio
async def test_token_with_wrong_audience_is_rejected(client, token) -> None:
    bad = token("alice", ("USER",), aud="someone-else")
    r = await client.get("/v1/submit/1", headers={"Authorization": f"Bearer {bad}"})
    assert r.status_code == 401


@pytest.mark.asyncio
async def test_unknown_role_cannot_submit(client, authoring, auth) -> None:
    test_id, q1, _ = await _seed(authoring)
    r = await client.post("/v1/submit", json=_body(test_id, [(q1, ["a"])]), headers=auth("eve", "GUEST"))
    assert r.status_code == 403


@pytest.mark.asyncio
async def test_listings_require_a_known_role(client, auth) -> None:
    r = await client.get("/v1/submit/user/alice", headers=auth("eve", "GUEST"))
    assert r.status_code == 403
    r = await client.get("/v1/submit/test/1", headers=auth("eve", "GUEST"))
    assert r.status_code == 403
    r = await client.get("/v1/submit/test/1", headers=auth("carol", "CREATOR"))
    assert r.json() == []


@pytest.mark.asyncio
async def test_malformed_submission_is_rejected(client, auth) -> None:
    r = await client.post("/v1/submit", json={"choose_answers": []}, headers=auth())
    assert r.status_code == 422
    body = r.json()
    assert body["error"] == "validation_error"
    assert "test" in body["detail"]
    assert body["retryable"] is False


@pytest.mark.asyncio
async def test_invalid_question_reference_uses_same_error_shape(client, auth) -> None:
    r = await client.post("/v1/submit", json=_body(1, [(0, ["a"])]), headers=auth())
    assert r.status_code == 422
    assert set(r.json()) == {"error", "detail", "retryable", "take_test_id"}
    assert r.json()["error"] == "validation_error"


@pytest.mark.asyncio
async def test_database_failure_is_503_and_retryable(client, store, authoring, auth) -> None:
    test_id, q1, _ = await _seed(authoring)
    async with store.engine.begin() as conn:
        await conn.execute(text("DROP TABLE take_test_choices"))

    r = await client.post("/v1/submit", json=_body(test_id, [(q1, ["a", "c"])]), headers=auth())
    assert r.status_code == 503
    body = r.json()
    assert body["error"] == "persistence_error"
    assert body["retryable"] is True


@pytest.mark.asyncio
async def test_deleted_question_reports_fatal_error(client, authoring, auth) -> None:
    test_id, q1, q2 = await _seed(authoring)
    await authoring.delete_question(q2)

    r = await client.post("/v1/submit", json=_body(test_id, [(q1, ["a", "c"]), (q2, ["b"])]), headers=auth())
    assert r.status_code == 409
    body = r.json()
    assert body["error"] == "reference_error"
    assert body["retryable"] is False
    take_test_id = body["take_test_id"]

    r = await client.get("/v1/submit/ungraded", headers=auth("root", "ADMIN"))
    assert [a["id"] for a in r.json()] == [take_test_id]
    r = await client.get("/v1/submit/ungraded", headers=auth())
    assert r.status_code == 403


@pytest.mark.asyncio
async def test_regrade_requires_grader_role(client, authoring, auth) -> None:
    test_id, q1, q2 = await _seed(authoring)
    r = await client.post("/v1/submit", json=_body(test_id, [(q1, ["a", "c"]), (q2, ["b"])]), headers=auth())
    take_test_id = r.json()["take_test_id"]

    r = await client.post(f"/v1/submit/{take_test_id}/regrade", headers=auth())
    assert r.status_code == 403

    r = await client.post(f"/v1/submit/{take_test_id}/regrade", headers=auth("carol", "CREATOR"))
    assert r.status_code == 200
    assert r.json() == {"total_points": 15, "correctness": [True, True]}


@pytest.mark.asyncio
async def test_unknown_attempt_is_404(client, auth) -> None:
    r = await client.get("/v1/submit/999", headers=auth())
    assert r.status_code == 404
    assert r.json()["error"] == "not_found"
