"""
Tests for Feedback API endpoints.
"""
import pytest
from unittest.mock import AsyncMock, patch

from desirable.services.cosmos_db_service import cosmos_db_service


@pytest.fixture
def feedback_db():
    """Patch feedback storage; writes echo the stored document."""
    async def echo(document):
        return document

    with patch.object(cosmos_db_service, "find_question_feedback", new=AsyncMock(return_value=None)) as find, \
         patch.object(cosmos_db_service, "create_feedback", new=AsyncMock(side_effect=echo)) as create, \
         patch.object(cosmos_db_service, "update_feedback", new=AsyncMock(side_effect=echo)) as update, \
         patch.object(cosmos_db_service, "count_recent_general_feedback", new=AsyncMock(return_value=0)) as count, \
         patch.object(cosmos_db_service, "get_feedback_history", new=AsyncMock(return_value=[])) as history:
        yield {"find": find, "create": create, "update": update, "count": count, "history": history}


class TestQuestionFeedback:
    """Tests for POST /feedback/question"""

    def test_first_rating_created(self, client, feedback_db):
        response = client.post("/api/feedback/question", json={
            "practiceId": "practice_1",
            "rating": "thumbs_up",
            "content": "Vertaal: de fiets",
            "difficulty": 5
        }, headers={"user-agent": "pytest"})

        assert response.status_code == 201
        stored = feedback_db["create"].call_args.args[0]
        assert stored["userId"] == "test_user_123"
        assert stored["feedbackType"] == "question_rating"
        assert stored["questionFeedback"]["rating"] == "thumbs_up"
        assert stored["deviceInfo"]["platform"] == "pytest"
        assert stored["status"] == "pending"

    def test_repeat_rating_updates(self, client, feedback_db):
        feedback_db["find"].return_value = {
            "id": "fb1",
            "userId": "test_user_123",
            "feedbackType": "question_rating",
            "questionFeedback": {"practiceId": "practice_1", "rating": "thumbs_up"},
            "_etag": "etag-f"
        }

        response = client.post("/api/feedback/question", json={
            "practiceId": "practice_1",
            "rating": "thumbs_down"
        })

        assert response.status_code == 200
        assert response.json()["data"]["questionFeedback"]["rating"] == "thumbs_down"
        feedback_db["create"].assert_not_called()

    def test_invalid_rating(self, client, feedback_db):
        response = client.post("/api/feedback/question", json={
            "practiceId": "practice_1",
            "rating": "meh"
        })

        assert response.status_code == 400


class TestGeneralFeedback:
    """Tests for POST /feedback/general"""

    def test_submit_general_feedback(self, client, feedback_db):
        response = client.post("/api/feedback/general", json={"message": "Love the exercises"})

        assert response.status_code == 201
        body = response.json()
        assert body["message"] == "Thank you for your feedback!"
        stored = feedback_db["create"].call_args.args[0]
        assert body["data"]["id"] == stored["id"]
        assert stored["generalFeedback"] == {
            "title": "Feedback",
            "message": "Love the exercises",
            "category": "other"
        }

    def test_daily_limit(self, client, feedback_db):
        feedback_db["count"].return_value = 5

        response = client.post("/api/feedback/general", json={"message": "One more"})

        assert response.status_code == 429
        feedback_db["create"].assert_not_called()

    def test_message_too_long(self, client, feedback_db):
        response = client.post("/api/feedback/general", json={"message": "x" * 2001})

        assert response.status_code == 400


class TestFeedbackHistory:

    def test_history(self, client, feedback_db):
        feedback_db["history"].return_value = [{
            "id": "fb1",
            "userId": "test_user_123",
            "feedbackType": "general_feedback",
            "generalFeedback": {"message": "Nice"}
        }]

        response = client.get("/api/feedback/history")

        assert response.status_code == 200
        assert response.json()["data"][0]["generalFeedback"]["title"] == "Feedback"
        feedback_db["history"].assert_awaited_once_with("test_user_123", 20)
