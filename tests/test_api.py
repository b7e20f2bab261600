"""
Integration tests for API endpoints
"""
import json
from unittest.mock import MagicMock, patch

import pytest

KEY = "sk-test-1234567890"
LESSON = (
    "Photosynthesis converts light energy into chemical energy. "
    "Plants use chlorophyll to absorb light. The process occurs in chloroplasts."
)


def sample_question(n: int = 0) -> dict:
    return {"prompt": f"Question {n}?", "choices": ["Red", "Green", "Blue", "Gray"], "answerIndex": n % 4}


class TestHealthEndpoints:
    def test_health_check(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert "status" in data
        assert "timestamp" in data
        assert data["checks"]["database"]["status"] == "healthy"
        assert data["checks"]["cache"]["backend"] == "memory"

    def test_metrics_endpoint(self, client):
        response = client.get("/metrics")
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/plain")
        assert "quiz_generation_requests" in response.text

    def test_index(self, client):
        response = client.get("/")
        assert response.status_code == 200
        assert response.json()["name"] == "QuizQuest"
        assert "X-Process-Time" in response.headers

    def test_request_id_generated_and_echoed(self, client):
        assert len(client.get("/").headers["X-Request-ID"]) == 32
        response = client.get("/", headers={"X-Request-ID": "trace-123"})
        assert response.headers["X-Request-ID"] == "trace-123"


class TestAuthRequired:
    @pytest.mark.parametrize("method, path", [
        ("get", "/quizzes"),
        ("get", "/budget"),
        ("post", "/lessons/generate/local"),
        ("get", "/sessions/history?quiz_id=1"),
    ])
    def test_missing_token(self, client, method, path):
        response = getattr(client, method)(path)
        assert response.status_code == 401

    def test_bad_token(self, client):
        response = client.get("/quizzes", headers={"Authorization": "Bearer nope"})
        assert response.status_code == 401


class TestLessonEndpoints:
    def test_extract_pdf(self, client, alice, pdf_factory):
        data = pdf_factory(["Volcanoes erupt molten rock called lava."])
        response = client.post(
            "/lessons/extract",
            headers=alice,
            files={"file": ("lesson.pdf", data, "application/pdf")},
        )
        assert response.status_code == 200
        body = response.json()
        assert "Volcanoes erupt molten rock called lava." in body["text"]
        assert body["chars"] == len(body["text"])

    def test_extract_rejects_non_pdf(self, client, alice):
        response = client.post(
            "/lessons/extract",
            headers=alice,
            files={"file": ("notes.txt", b"hello", "text/plain")},
        )
        assert response.status_code == 400

    def test_extract_unreadable_pdf(self, client, alice, pdf_factory):
        data = pdf_factory([""], blank=True)
        with patch("quizquest.services.pdf_extractor.pytesseract.image_to_string", return_value=""):
            response = client.post(
                "/lessons/extract",
                headers=alice,
                files={"file": ("scan.pdf", data, "application/pdf")},
            )
        assert response.status_code == 422
        assert "Could not extract text" in response.json()["detail"]

    def test_estimate(self, client, alice):
        response = client.post("/lessons/estimate", headers=alice, json={"text": LESSON, "count": 5})
        assert response.status_code == 200
        body = response.json()
        assert body["estimate"]["output_tokens"] == 600
        assert body["over_budget"] is True

    def test_generate_local(self, client, alice):
        response = client.post("/lessons/generate/local", headers=alice, json={"text": LESSON, "count": 3})
        assert response.status_code == 200
        body = response.json()
        assert body["strategy"] == "local"
        assert len(body["questions"]) == 3
        for q in body["questions"]:
            assert len(q["choices"]) == 4
            assert 0 <= q["answerIndex"] <= 3

    def test_generate_local_empty_text(self, client, alice):
        response = client.post("/lessons/generate/local", headers=alice, json={"text": "  ", "count": 3})
        assert response.status_code == 400

    @pytest.mark.parametrize("count", [0, 21])
    def test_count_bounds(self, client, alice, count):
        response = client.post("/lessons/generate/local", headers=alice, json={"text": LESSON, "count": count})
        assert response.status_code == 422

    def test_generate_ai_over_budget(self, client, alice):
        with patch("quizquest.services.llm._get_client") as mock_get_client:
            response = client.post(
                "/lessons/generate/ai", headers=alice, json={"text": LESSON, "count": 3, "api_key": KEY}
            )
        assert response.status_code == 402
        mock_get_client.assert_not_called()
        assert client.get("/budget", headers=alice).json()["spent_usd"] == 0.0

    def test_generate_ai_success_records_spend(self, client, alice):
        client.put("/budget", headers=alice, json={"budget_usd": 1.0})
        mock_client = MagicMock()
        mock_client.chat.completions.create.return_value.choices = [MagicMock()]
        mock_client.chat.completions.create.return_value.choices[0].message.content = json.dumps(
            {"questions": [sample_question(0), sample_question(1)]}
        )
        with patch("quizquest.services.llm._get_client", return_value=mock_client):
            response = client.post(
                "/lessons/generate/ai", headers=alice, json={"text": LESSON, "count": 2, "api_key": KEY}
            )
        assert response.status_code == 200
        body = response.json()
        assert len(body["questions"]) == 2
        assert body["budget"]["spent_usd"] == pytest.approx(body["estimate"]["usd"])

    def test_generate_ai_bad_key(self, client, alice):
        client.put("/budget", headers=alice, json={"budget_usd": 1.0})
        response = client.post(
            "/lessons/generate/ai", headers=alice, json={"text": LESSON, "count": 2, "api_key": "oops"}
        )
        assert response.status_code == 400

    def test_save_then_read_back(self, client, alice):
        generated = client.post(
            "/lessons/generate/local", headers=alice, json={"text": LESSON, "count": 2}
        ).json()["questions"]
        response = client.post(
            "/lessons/save", headers=alice, json={"title": "Photosynthesis Basics", "questions": generated}
        )
        assert response.status_code == 200
        quiz_id = response.json()["quiz_id"]

        quiz = client.get(f"/quizzes/{quiz_id}", headers=alice).json()
        assert quiz["title"] == "Photosynthesis Basics"
        assert quiz["owner_uid"] == "alice"
        assert [q["prompt"] for q in quiz["questions"]] == [q["prompt"] for q in generated]
        assert [q["answerIndex"] for q in quiz["questions"]] == [q["answerIndex"] for q in generated]

    def test_save_requires_title(self, client, alice):
        response = client.post(
            "/lessons/save", headers=alice, json={"title": " ", "questions": [sample_question()]}
        )
        assert response.status_code == 400

    def test_save_rejects_malformed_question(self, client, alice):
        bad = {"prompt": "Q?", "choices": ["a", "b"], "answerIndex": 0}
        response = client.post("/lessons/save", headers=alice, json={"title": "T", "questions": [bad]})
        assert response.status_code == 422


class TestBudgetEndpoints:
    def test_defaults(self, client, alice):
        body = client.get("/budget", headers=alice).json()
        assert body["budget_usd"] == 0.0
        assert body["spent_usd"] == 0.0
        assert body["has_api_key"] is False

    def test_update_and_reset(self, client, alice):
        assert client.put("/budget", headers=alice, json={"budget_usd": 2.5}).json()["budget_usd"] == 2.5
        assert client.put("/budget", headers=alice, json={"budget_usd": -1}).status_code == 422
        assert client.post("/budget/reset", headers=alice).json()["spent_usd"] == 0.0

    def test_api_key_never_echoed(self, client, alice):
        response = client.put("/budget/api-key", headers=alice, json={"api_key": KEY})
        assert response.status_code == 200
        body = client.get("/budget", headers=alice).json()
        assert body["has_api_key"] is True
        assert KEY not in json.dumps(body)
        client.delete("/budget/api-key", headers=alice)
        assert client.get("/budget", headers=alice).json()["has_api_key"] is False

    def test_api_key_validated(self, client, alice):
        assert client.put("/budget/api-key", headers=alice, json={"api_key": "hello"}).status_code == 400

    def test_budget_per_user(self, client, alice, bob):
        client.put("/budget", headers=alice, json={"budget_usd": 3})
        assert client.get("/budget", headers=bob).json()["budget_usd"] == 0.0


class TestQuizAndPlay:
    def _quiz_with_questions(self, client, headers, n=3):
        quiz = client.post("/quizzes", headers=headers, json={"title": "Colors", "description": "d"}).json()
        for i in range(n):
            r = client.post(f"/quizzes/{quiz['id']}/questions", headers=headers, json=sample_question(i))
            assert r.status_code == 200
        return quiz["id"]

    def test_list_newest_first(self, client, alice):
        first = client.post("/quizzes", headers=alice, json={"title": "First"}).json()["id"]
        second = client.post("/quizzes", headers=alice, json={"title": "Second"}).json()["id"]
        ids = [q["id"] for q in client.get("/quizzes", headers=alice).json()]
        assert ids.index(second) < ids.index(first)

    def test_create_requires_title(self, client, alice):
        assert client.post("/quizzes", headers=alice, json={"title": "  "}).status_code == 400

    def test_only_owner_adds_questions(self, client, alice, bob):
        quiz_id = client.post("/quizzes", headers=alice, json={"title": "Mine"}).json()["id"]
        response = client.post(f"/quizzes/{quiz_id}/questions", headers=bob, json=sample_question())
        assert response.status_code == 403

    def test_missing_quiz(self, client, alice):
        assert client.get("/quizzes/999", headers=alice).status_code == 404

    def test_play_scores_answers(self, client, alice, bob):
        quiz_id = self._quiz_with_questions(client, alice, n=3)
        play = client.post(f"/sessions?quiz_id={quiz_id}", headers=bob).json()
        assert play["score"] == 0

        # answers are 0, 1, 2; bob gets the first two right
        finished = client.post(f"/sessions/{play['id']}/finish", headers=bob, json={"answers": [0, 1, 3]}).json()
        assert finished["score"] == 2
        assert finished["total"] == 3
        assert finished["finished_at"] is not None

    def test_finish_twice(self, client, alice):
        quiz_id = self._quiz_with_questions(client, alice, n=1)
        play = client.post(f"/sessions?quiz_id={quiz_id}", headers=alice).json()
        client.post(f"/sessions/{play['id']}/finish", headers=alice, json={"answers": [0]})
        again = client.post(f"/sessions/{play['id']}/finish", headers=alice, json={"answers": [0]})
        assert again.status_code == 409

    def test_cannot_finish_someone_elses_session(self, client, alice, bob):
        quiz_id = self._quiz_with_questions(client, alice, n=1)
        play = client.post(f"/sessions?quiz_id={quiz_id}", headers=alice).json()
        response = client.post(f"/sessions/{play['id']}/finish", headers=bob, json={"answers": [0]})
        assert response.status_code == 404

    def test_history_is_mine_and_newest_first(self, client, alice, bob):
        quiz_id = self._quiz_with_questions(client, alice, n=1)
        first = client.post(f"/sessions?quiz_id={quiz_id}", headers=alice).json()["id"]
        second = client.post(f"/sessions?quiz_id={quiz_id}", headers=alice).json()["id"]
        client.post(f"/sessions?quiz_id={quiz_id}", headers=bob)

        history = client.get(f"/sessions/history?quiz_id={quiz_id}", headers=alice).json()
        assert [h["id"] for h in history] == [second, first]

    def test_start_on_missing_quiz(self, client, alice):
        assert client.post("/sessions?quiz_id=12345", headers=alice).status_code == 404
