"""
Pytest configuration and fixtures for tests.
"""
import os

os.environ.setdefault("NODE_ENV", "test")

import copy
import pytest
from contextlib import ExitStack
from itertools import count
from unittest.mock import AsyncMock, patch
from datetime import datetime

from fastapi.testclient import TestClient

from desirable.core.dependencies import get_current_user
from desirable.main import app
from desirable.models.practice import Practice
from desirable.models.progress import UserProgress
from desirable.models.user import User
from desirable.services.cosmos_db_service import ConcurrencyConflictError, cosmos_db_service
from desirable.services.openai_service import EvaluationResult, GenerationResult


TEST_USER_ID = "test_user_123"


@pytest.fixture
def sample_user_data():
    """Sample stored user document."""
    return {
        "id": TEST_USER_ID,
        "email": "test@example.com",
        "name": "Test User",
        "passwordHash": "not-a-real-hash",
        "motherLanguage": "English",
        "currentLevel": 1,
        "isAdmin": False,
        "hasCompletedOnboarding": True,
        "learningSubject": "dutch",
        "createdAt": datetime.utcnow().isoformat()
    }


@pytest.fixture
def sample_user(sample_user_data):
    return User(**sample_user_data)


@pytest.fixture
def sample_progress_data():
    """Stored progress document with a mid-range vocabulary level."""
    progress = UserProgress.initial(TEST_USER_ID)
    progress.skill_levels.vocabulary = 5.0
    progress.current_difficulty = 5.0
    progress.current_complexity = 4.0
    progress.completed_practices = 4
    progress.average_difficulty = 3.0
    progress.average_complexity = 2.0
    document = progress.to_document()
    document["_etag"] = "etag-1"
    return document


@pytest.fixture
def sample_practice_data():
    """Stored open vocabulary practice."""
    practice = Practice(
        id="practice_1",
        user_id=TEST_USER_ID,
        type="vocabulary",
        content="Wat betekent 'fiets'?",
        translation="What does 'fiets' mean?",
        categories=["transport"],
        difficulty=5,
        complexity=4
    )
    document = practice.to_document()
    document["_etag"] = "etag-p1"
    return document


@pytest.fixture
def mock_cosmos_service(sample_user_data, sample_progress_data, sample_practice_data):
    """Mock Cosmos DB service; create/replace calls echo their input."""
    service = AsyncMock()

    service.get_user.return_value = sample_user_data
    service.get_user_progress.return_value = sample_progress_data
    service.get_practice.return_value = sample_practice_data

    async def echo(document, *args, **kwargs):
        return document

    service.create_practice.side_effect = echo
    service.close_practice.side_effect = echo
    service.replace_user_progress.side_effect = echo
    return service


@pytest.fixture
def mock_generator():
    """Mock exercise generator returning real (non-fallback) results."""
    generator = AsyncMock()
    generator.generate.return_value = GenerationResult.success_result(
        content="Vertaal: de fiets",
        translation="Translate: the bicycle",
        categories=["transport"]
    )
    generator.evaluate.return_value = EvaluationResult.success_result(
        is_correct=True,
        feedback="Goed gedaan!"
    )
    generator.answer_follow_up.return_value = "'Fiets' means bicycle."
    return generator


class InMemoryCosmos:
    """
    Dict-backed stand-in for the Cosmos DB service methods used by the
    practice workflow, including ETag compare-and-set semantics.
    """

    def __init__(self):
        self.users: dict[str, dict] = {}
        self.progress: dict[str, dict] = {}
        self.practices: dict[str, dict] = {}
        self._etags = count(1)

    def _stamp(self, document: dict) -> dict:
        document = copy.deepcopy(document)
        document["_etag"] = f"etag-{next(self._etags)}"
        return document

    def add_user(self, user_data: dict) -> None:
        self.users[user_data["id"]] = copy.deepcopy(user_data)

    def add_progress(self, progress: UserProgress) -> None:
        document = self._stamp(progress.to_document())
        self.progress[document["id"]] = document

    def progress_for(self, user_id: str, learning_subject: str = "dutch") -> UserProgress:
        return UserProgress(**self.progress[UserProgress.progress_id(user_id, learning_subject)])

    def _replace(self, table: dict, document: dict, etag) -> dict:
        current = table.get(document["id"])
        if current is None:
            raise KeyError(document["id"])
        if etag is not None and current["_etag"] != etag:
            raise ConcurrencyConflictError(f"Document {document['id']} was modified")
        table[document["id"]] = self._stamp(document)
        return copy.deepcopy(table[document["id"]])

    async def get_user(self, user_id):
        return copy.deepcopy(self.users.get(user_id))

    async def get_user_progress(self, user_id, learning_subject):
        document = self.progress.get(UserProgress.progress_id(user_id, learning_subject))
        return copy.deepcopy(document)

    async def replace_user_progress(self, progress_data, etag):
        return self._replace(self.progress, progress_data, etag)

    async def create_practice(self, practice_data):
        document = self._stamp(practice_data)
        self.practices[document["id"]] = document
        return copy.deepcopy(document)

    async def get_practice(self, practice_id):
        return copy.deepcopy(self.practices.get(practice_id))

    async def close_practice(self, practice_data, etag):
        return self._replace(self.practices, practice_data, etag)


@pytest.fixture
def memory_db(sample_user_data):
    """Route the shared Cosmos DB service through an in-memory store."""
    store = InMemoryCosmos()
    store.add_user(sample_user_data)
    methods = [
        "get_user", "get_user_progress", "replace_user_progress",
        "create_practice", "get_practice", "close_practice"
    ]
    with ExitStack() as stack:
        for method in methods:
            stack.enter_context(patch.object(cosmos_db_service, method, new=getattr(store, method)))
        yield store


@pytest.fixture
def client(sample_user):
    """Test client authenticated as the sample user."""
    app.dependency_overrides[get_current_user] = lambda: sample_user
    yield TestClient(app)
    app.dependency_overrides.clear()
