"""
Client Module
Async API client and the client-side practice session controller.
"""
from desirable.client.api_client import (
    ApiClient,
    ApiConnectionError,
    ApiError,
    ApiTimeoutError,
    ClientConfig,
    NetworkProfile,
    SessionExpiredError
)
from desirable.client.practice_session import (
    DifficultyTrend,
    Notice,
    PracticeSession,
    PracticeSessionError
)

__all__ = [
    "ApiClient", "ApiConnectionError", "ApiError", "ApiTimeoutError",
    "ClientConfig", "NetworkProfile", "SessionExpiredError",
    "DifficultyTrend", "Notice", "PracticeSession", "PracticeSessionError"
]
