import httpx
from fastapi.testclient import TestClient

from tests.helpers.asserts import api_call
from tests.helpers.exam_factory import fib_payload, mcq_payload, open_ended_payload


def _headers(token):
    return {"Authorization": f"Bearer {token}"}


def _published_exam(client: TestClient, teacher_headers, questions):
    r_exam = api_call(client, "POST", "/exams/", headers=teacher_headers, json={"title": "Cell Biology", "time_limit_minutes": 30})
    exam_id = r_exam.json()["data"]["id"]
    r_questions = client.post(f"/exams/{exam_id}/questions", headers=teacher_headers, json=questions)
    assert r_questions.status_code == 201, r_questions.text
    api_call(client, "POST", f"/exams/{exam_id}/publish", headers=teacher_headers)
    return exam_id, [q["id"] for q in r_questions.json()["data"]]


def test_mark_allocation_endpoint(client: TestClient, token_for_role):
    response = client.get("/exams/mark-allocation", params={"total_questions": 3}, headers=_headers(token_for_role("teacher")))

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["base_marks"] == 33.3
    assert data["adjustment"] == 0.1
    assert data["last_question_marks"] == 33.4
    assert data["total_questions"] == 3


def test_mark_allocation_rejects_negative_count(client: TestClient, token_for_role):
    response = client.get("/exams/mark-allocation", params={"total_questions": -2}, headers=_headers(token_for_role("teacher")))

    assert response.status_code == 422
    assert response.json()["error"]["code"] == "VALIDATION_ERROR"


def test_requests_without_valid_token_are_rejected(client: TestClient):
    missing = client.post("/exams/", json={"title": "No auth"})
    assert missing.status_code in (401, 403)

    forged = client.post("/exams/", headers=_headers("not-a-jwt"), json={"title": "No auth"})
    assert forged.status_code == 401
    assert forged.json()["error"]["code"] == "UNAUTHORIZED"
    assert forged.headers.get("X-Request-ID")


def test_students_cannot_create_exams(client: TestClient, token_for_role):
    response = client.post("/exams/", headers=_headers(token_for_role("student")), json={"title": "Sneaky"})
    assert response.status_code == 403
    assert response.json()["error"]["code"] == "FORBIDDEN"


def test_invalid_questions_are_rejected(client: TestClient, token_for_role):
    teacher_headers = _headers(token_for_role("teacher"))
    exam_id = api_call(client, "POST", "/exams/", headers=teacher_headers, json={"title": "Validation"}).json()["data"]["id"]

    bad_mcq = mcq_payload()
    bad_mcq["options"] = bad_mcq["options"][:3]
    response = client.post(f"/exams/{exam_id}/questions", headers=teacher_headers, json=[bad_mcq])
    assert response.status_code == 400
    assert "exactly 4 options" in response.json()["error"]["message"]

    no_blank = fib_payload()
    no_blank["correct_answer"] = "  "
    response = client.post(f"/exams/{exam_id}/questions", headers=teacher_headers, json=[no_blank])
    assert response.status_code == 400

    response = client.post(f"/exams/{exam_id}/publish", headers=teacher_headers)
    assert response.status_code == 400


def test_exam_total_marks_follow_questions(client: TestClient, token_for_role):
    teacher_headers = _headers(token_for_role("teacher"))
    exam_id = api_call(client, "POST", "/exams/", headers=teacher_headers, json={"title": "Totals"}).json()["data"]["id"]
    api_call(client, "POST", f"/exams/{exam_id}/questions", headers=teacher_headers,
             json=[mcq_payload(marks=5), fib_payload(marks=5), open_ended_payload(marks=5)])

    allocated = api_call(client, "POST", f"/exams/{exam_id}/allocate-marks", headers=teacher_headers).json()["data"]
    assert allocated["total_marks"] == 100
    assert [q["marks"] for q in allocated["questions"]] == [33.3, 33.3, 33.4]

    exam = api_call(client, "GET", f"/exams/{exam_id}", headers=teacher_headers).json()["data"]
    assert exam["total_marks"] == 100


def test_students_do_not_see_answer_keys(client: TestClient, token_for_role):
    exam_id, _ = _published_exam(client, _headers(token_for_role("teacher")), [mcq_payload(), fib_payload()])

    response = api_call(client, "GET", f"/exams/{exam_id}/questions", headers=_headers(token_for_role("student")))

    for question in response.json()["data"]:
        assert "model_answer" not in question
        assert "correct_answer" not in question
        for option in question["options"]:
            assert "is_correct" not in option


def test_unknown_attempt_returns_not_found(client: TestClient, token_for_role):
    response = client.get("/exams/attempts/987654", headers=_headers(token_for_role("student")))
    assert response.status_code == 404
    body = response.json()
    assert body["error"]["code"] == "NOT_FOUND"
    assert body["request_id"]


def test_live_check_reports_evaluator_outage_as_retryable(client: TestClient, token_for_role, semantic_evaluator_stub):
    semantic_evaluator_stub(lambda request: httpx.Response(503, json={"error": "Model overloaded"}))
    exam_id, (question_id,) = _published_exam(client, _headers(token_for_role("teacher")), [open_ended_payload()])
    student_headers = _headers(token_for_role("student"))
    attempt_id = api_call(client, "POST", f"/exams/{exam_id}/attempts", headers=student_headers).json()["data"]["id"]

    response = client.post(f"/exams/attempts/{attempt_id}/answers/check", headers=student_headers,
                           json={"question_id": question_id, "answer_text": "ATP is made in mitochondria."})

    assert response.status_code == 502
    error = response.json()["error"]
    assert error["code"] == "EVALUATOR_UNAVAILABLE"
    assert error["retryable"] is True
    assert "Model overloaded" in error["message"]

    details = api_call(client, "GET", f"/exams/attempts/{attempt_id}", headers=student_headers).json()["data"]
    saved = details["questions"][0]["student_answer"]
    assert saved["answer_text"] == "ATP is made in mitochondria."
    assert saved["correctness"] is None


def test_caller_request_id_is_echoed(client: TestClient, token_for_role):
    response = client.get(
        "/exams/mark-allocation",
        params={"total_questions": 4},
        headers={**_headers(token_for_role("teacher")), "X-Request-ID": "submit-retry-42"},
    )
    assert response.headers["X-Request-ID"] == "submit-retry-42"


def test_published_exam_questions_are_frozen(client: TestClient, token_for_role):
    teacher_headers = _headers(token_for_role("teacher"))
    exam_id = api_call(client, "POST", "/exams/", headers=teacher_headers, json={"title": "Frozen"}).json()["data"]["id"]
    created = api_call(client, "POST", f"/exams/{exam_id}/questions", headers=teacher_headers,
                       json=[mcq_payload(marks=4), fib_payload(marks=6)]).json()["data"]

    deleted = api_call(client, "DELETE", f"/exams/questions/{created[0]['id']}", headers=teacher_headers).json()["data"]
    assert deleted["id"] == created[0]["id"]
    assert api_call(client, "GET", f"/exams/{exam_id}", headers=teacher_headers).json()["data"]["total_marks"] == 6

    api_call(client, "POST", f"/exams/{exam_id}/publish", headers=teacher_headers)
    response = client.delete(f"/exams/questions/{created[1]['id']}", headers=teacher_headers)
    assert response.status_code == 400
    response = client.post(f"/exams/{exam_id}/questions", headers=teacher_headers, json=[mcq_payload()])
    assert response.status_code == 400


def test_exam_listing_depends_on_role(client: TestClient, token_for_role):
    teacher_headers = _headers(token_for_role("teacher"))
    published_id, _ = _published_exam(client, teacher_headers, [mcq_payload()])
    draft_id = api_call(client, "POST", "/exams/", headers=teacher_headers, json={"title": "Draft"}).json()["data"]["id"]

    own = {e["id"] for e in api_call(client, "GET", "/exams/", headers=teacher_headers).json()["data"]}
    assert {published_id, draft_id} <= own

    visible = {e["id"] for e in api_call(client, "GET", "/exams/", headers=_headers(token_for_role("student"))).json()["data"]}
    assert draft_id not in visible


def test_teacher_lists_attempts_on_own_exam(client: TestClient, token_for_role):
    teacher_headers = _headers(token_for_role("teacher"))
    student_headers = _headers(token_for_role("student"))
    exam_id, _ = _published_exam(client, teacher_headers, [mcq_payload()])
    attempt_id = api_call(client, "POST", f"/exams/{exam_id}/attempts", headers=student_headers).json()["data"]["id"]

    attempts = api_call(client, "GET", f"/exams/{exam_id}/attempts", headers=teacher_headers).json()["data"]
    assert [a["id"] for a in attempts] == [attempt_id]

    response = client.get(f"/exams/{exam_id}/attempts", headers=student_headers)
    assert response.status_code == 403
