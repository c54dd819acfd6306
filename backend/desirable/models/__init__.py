"""
Pydantic Models Module
Contains data models for all entities in the application.
"""
from desirable.models.user import User, UserCreate, UserLogin, UserResponse, AuthResponse
from desirable.models.progress import ExerciseType, SkillLevels, UserProgress, AdjustmentModeInfo
from desirable.models.practice import Practice, QuestionType
from desirable.models.feedback import (
    Feedback, FeedbackType, FeedbackCategory, FeedbackStatus,
    QuestionFeedback, QuestionRating, GeneralFeedback, DeviceInfo
)
from desirable.models.invitation import InvitationCode, normalize_invitation_code

__all__ = [
    "User", "UserCreate", "UserLogin", "UserResponse", "AuthResponse",
    "ExerciseType", "SkillLevels", "UserProgress", "AdjustmentModeInfo",
    "Practice", "QuestionType",
    "Feedback", "FeedbackType", "FeedbackCategory", "FeedbackStatus",
    "QuestionFeedback", "QuestionRating", "GeneralFeedback", "DeviceInfo",
    "InvitationCode", "normalize_invitation_code"
]
