import pytest

from models import db, QuizAttempt


def create_quiz(client, **fields):
    response = client.post("/api/quizzes/new", json={"title": "World capitals", **fields})
    assert response.status_code == 201
    return response.get_json()["quiz"]


def add_single_question(client, quiz_id, points=10):
    response = client.post(f"/api/quizzes/{quiz_id}/questions/new", json={
        "prompt": "Capital of France?",
        "type": "single",
        "points": points,
        "options": [{"text": "Paris", "is_correct": True}, {"text": "Lyon"}, {"text": "Nice"}],
    })
    assert response.status_code == 201
    return response.get_json()["question"]


def option_id(question, correct=True):
    return next(o["id"] for o in question["options"] if o["is_correct"] is correct)


class TestAuth:

    def test_register_login_and_check(self, client):
        response = client.post("/api/auth/register", json={
            "username": "sam", "email": "sam@example.com", "password": "secret123", "full_name": "Sam Lee",
        })
        assert response.status_code == 201

        response = client.post("/api/auth/register", json={
            "username": "sam", "email": "other@example.com", "password": "secret123", "full_name": "Sam Again",
        })
        assert response.status_code == 409

        response = client.post("/api/auth/login", json={"username_or_email": "sam@example.com", "password": "secret123"})
        assert response.status_code == 200

        response = client.get("/api/auth/check-auth")
        assert response.status_code == 200
        assert response.get_json()["user"]["username"] == "sam"

    def test_wrong_password(self, client, make_user):
        make_user("sam")
        response = client.post("/api/auth/login", json={"username_or_email": "sam", "password": "nope"})
        assert response.status_code == 401

    def test_protected_routes_need_a_token(self, client):
        assert client.get("/api/quizzes").status_code == 401
        assert client.post("/api/quizzes/1/attempts").status_code == 401

    def test_garbage_token_is_rejected(self, client):
        client.set_cookie("access_token", "not-a-jwt")
        assert client.get("/api/quizzes/mine").status_code == 401


class TestQuizFlow:

    def test_take_a_quiz_end_to_end(self, client, login, author, taker):
        login(author)
        quiz = create_quiz(client)
        question = add_single_question(client, quiz["id"], points=10)
        correct = option_id(question)

        login(taker)
        response = client.get(f"/api/quizzes/{quiz['id']}")
        assert response.status_code == 200
        assert "is_correct" not in response.get_json()["questions"][0]["options"][0]

        response = client.post(f"/api/quizzes/{quiz['id']}/attempts")
        assert response.status_code == 200
        attempt = response.get_json()["attempt"]
        assert (attempt["status"], attempt["max_score"]) == ("in_progress", 10)

        response = client.post(f"/api/attempts/{attempt['id']}/answers", json={
            "question_id": question["id"], "option_id": correct,
        })
        assert response.status_code == 200
        body = response.get_json()
        assert body["answer"]["is_correct"] is True
        assert body["score"] == 10

        response = client.post(f"/api/attempts/{attempt['id']}/finalize")
        assert response.status_code == 200
        result = response.get_json()["attempt"]
        assert (result["status"], result["score"], result["percentage"]) == ("completed", 10, 100.0)

        response = client.get(f"/api/attempts/{attempt['id']}")
        assert response.get_json()["quiz"]["questions"][0]["options"][0]["is_correct"] is True

    def test_author_sees_correct_flags(self, client, login, author):
        login(author)
        quiz = create_quiz(client)
        add_single_question(client, quiz["id"])

        body = client.get(f"/api/quizzes/{quiz['id']}").get_json()
        assert body["total_points"] == 10
        assert any(o["is_correct"] for o in body["questions"][0]["options"])

    def test_correctness_route_keeps_one_correct(self, client, login, author):
        login(author)
        quiz = create_quiz(client)
        question = add_single_question(client, quiz["id"])

        response = client.patch(f"/api/quizzes/options/{option_id(question, correct=False)}/correctness",
                                json={"is_correct": True})
        assert response.status_code == 200
        assert sum(1 for o in response.get_json()["options"] if o["is_correct"]) == 1


    def test_dashboard_and_latest_attempt_in_my_quizzes(self, client, login, author):
        login(author)
        quiz = create_quiz(client)
        question = add_single_question(client, quiz["id"], points=10)

        mine = client.get("/api/quizzes/mine").get_json()
        assert mine["items"][0]["latest_attempt"] is None

        attempt = client.post(f"/api/quizzes/{quiz['id']}/attempts").get_json()["attempt"]
        client.post(f"/api/attempts/{attempt['id']}/answers", json={
            "question_id": question["id"], "option_id": option_id(question),
        })
        client.post(f"/api/attempts/{attempt['id']}/finalize")

        mine = client.get("/api/quizzes/mine").get_json()
        assert mine["items"][0]["latest_attempt"]["status"] == "completed"

        response = client.get("/api/dashboard")
        assert response.status_code == 200
        board = response.get_json()
        assert board["stats"] == {"my_quizzes": 1, "attempts": 1, "average_percentage": 100.0}
        assert board["popular_quizzes"][0]["average_percentage"] == 100
        assert board["recent_attempts"][0]["quiz_title"] == "World capitals"


class TestErrorMapping:

    def test_second_finalize_is_a_conflict(self, client, login, author, taker):
        login(author)
        quiz = create_quiz(client)
        add_single_question(client, quiz["id"])

        login(taker)
        attempt = client.post(f"/api/quizzes/{quiz['id']}/attempts").get_json()["attempt"]
        assert client.post(f"/api/attempts/{attempt['id']}/finalize").status_code == 200

        response = client.post(f"/api/attempts/{attempt['id']}/finalize")
        assert response.status_code == 409
        assert response.get_json()["code"] == "already_finalized"

    def test_attempt_limit_is_forbidden(self, client, login, author, taker):
        login(author)
        quiz = create_quiz(client, max_attempts=1)
        add_single_question(client, quiz["id"])

        login(taker)
        attempt = client.post(f"/api/quizzes/{quiz['id']}/attempts").get_json()["attempt"]
        client.post(f"/api/attempts/{attempt['id']}/finalize")

        response = client.post(f"/api/quizzes/{quiz['id']}/attempts")
        assert response.status_code == 403
        assert response.get_json()["code"] == "attempt_limit_exceeded"

    def test_invalid_submission_is_unprocessable(self, client, login, author, taker):
        login(author)
        quiz = create_quiz(client)
        question = add_single_question(client, quiz["id"])

        login(taker)
        attempt = client.post(f"/api/quizzes/{quiz['id']}/attempts").get_json()["attempt"]
        response = client.post(f"/api/attempts/{attempt['id']}/answers", json={
            "question_id": question["id"], "option_ids": [o["id"] for o in question["options"]],
        })
        assert response.status_code == 422
        assert response.get_json()["code"] == "invalid_submission"

    def test_answer_after_finalize_is_a_conflict(self, client, login, author, taker):
        login(author)
        quiz = create_quiz(client)
        question = add_single_question(client, quiz["id"])

        login(taker)
        attempt = client.post(f"/api/quizzes/{quiz['id']}/attempts").get_json()["attempt"]
        client.post(f"/api/attempts/{attempt['id']}/finalize")

        response = client.post(f"/api/attempts/{attempt['id']}/answers", json={
            "question_id": question["id"], "option_id": option_id(question),
        })
        assert response.status_code == 409
        assert response.get_json()["code"] == "attempt_finalized"

    def test_other_users_cannot_touch_an_attempt(self, client, login, make_user, author, taker):
        login(author)
        quiz = create_quiz(client)
        add_single_question(client, quiz["id"])

        login(taker)
        attempt = client.post(f"/api/quizzes/{quiz['id']}/attempts").get_json()["attempt"]

        login(make_user("stranger"))
        assert client.get(f"/api/attempts/{attempt['id']}").status_code == 403
        assert client.post(f"/api/attempts/{attempt['id']}/finalize").status_code == 403
        assert db.session.get(QuizAttempt, attempt["id"]).status == "in_progress"

    def test_non_author_cannot_edit_quiz(self, client, login, author, taker):
        login(author)
        quiz = create_quiz(client)

        login(taker)
        response = client.put(f"/api/quizzes/{quiz['id']}/edit", json={"title": "Mine now"})
        assert response.status_code == 403

    def test_private_quiz(self, client, login, author, taker):
        login(author)
        quiz = create_quiz(client, visibility="private")
        add_single_question(client, quiz["id"])

        login(taker)
        assert client.get(f"/api/quizzes/{quiz['id']}").status_code == 403
        assert client.post(f"/api/quizzes/{quiz['id']}/attempts").status_code == 403

    def test_missing_things_are_not_found(self, client, login, taker):
        login(taker)
        assert client.get("/api/quizzes/999").status_code == 404
        assert client.post("/api/attempts/999/finalize").status_code == 404

    def test_bad_question_payload(self, client, login, author):
        login(author)
        quiz = create_quiz(client)
        response = client.post(f"/api/quizzes/{quiz['id']}/questions/new", json={
            "prompt": "Pick one", "type": "single",
            "options": [{"text": "A", "is_correct": True}, {"text": "B", "is_correct": True}],
        })
        assert response.status_code == 422
        assert response.get_json()["code"] == "validation_error"

    @pytest.mark.parametrize("selection", [
        {"option_ids": 5},
        {"option_ids": [[1]]},
        {"option_ids": {"a": 1}},
        {"option_id": {"id": 1}},
    ])
    def test_malformed_selection_is_unprocessable(self, client, login, author, taker, selection):
        login(author)
        quiz = create_quiz(client)
        question = add_single_question(client, quiz["id"])

        login(taker)
        attempt = client.post(f"/api/quizzes/{quiz['id']}/attempts").get_json()["attempt"]
        response = client.post(f"/api/attempts/{attempt['id']}/answers", json={
            "question_id": question["id"], **selection,
        })
        assert response.status_code == 422
        assert response.get_json()["code"] == "invalid_submission"
        assert client.get(f"/api/attempts/{attempt['id']}").get_json()["attempt"]["answers"] == []
