"""
Feedback Models
Question ratings (thumbs up/down on a practice) and general app feedback.
"""
from datetime import datetime
from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel


class FeedbackType(str, Enum):
    QUESTION_RATING = "question_rating"
    GENERAL_FEEDBACK = "general_feedback"


class QuestionRating(str, Enum):
    THUMBS_UP = "thumbs_up"
    THUMBS_DOWN = "thumbs_down"


class FeedbackCategory(str, Enum):
    BUG = "bug"
    FEATURE_REQUEST = "feature_request"
    CONTENT_QUALITY = "content_quality"
    DIFFICULTY = "difficulty"
    OTHER = "other"


class FeedbackStatus(str, Enum):
    PENDING = "pending"
    REVIEWED = "reviewed"
    RESOLVED = "resolved"
    SPAM = "spam"


class _CamelModel(BaseModel):
    class Config:
        alias_generator = to_camel
        populate_by_name = True
        use_enum_values = True


class QuestionFeedback(_CamelModel):
    practice_id: str
    rating: QuestionRating
    content: Optional[str | list[str]] = None
    difficulty: Optional[float] = None


class GeneralFeedback(_CamelModel):
    title: str = Field(default="Feedback")
    message: str = Field(..., min_length=1, max_length=2000)
    category: FeedbackCategory = FeedbackCategory.OTHER


class DeviceInfo(_CamelModel):
    platform: str = Field(default="unknown")
    version: Optional[str] = None
    app_version: Optional[str] = None


class Feedback(_CamelModel):
    """Stored feedback record"""
    id: str
    user_id: str
    feedback_type: FeedbackType
    question_feedback: Optional[QuestionFeedback] = None
    general_feedback: Optional[GeneralFeedback] = None
    device_info: DeviceInfo = Field(default_factory=DeviceInfo)
    status: FeedbackStatus = FeedbackStatus.PENDING
    ip_address: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)

    def to_document(self) -> dict:
        return self.model_dump(by_alias=True, mode="json")
