"""
Feedback Schemas
Request schemas for feedback API endpoints.
"""
from typing import Optional
from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel

from desirable.models.feedback import FeedbackCategory, QuestionRating


class QuestionFeedbackRequest(BaseModel):
    """Thumbs up/down on a practice question."""
    practice_id: str = Field(..., min_length=1)
    rating: QuestionRating
    content: Optional[str | list[str]] = None
    difficulty: Optional[float] = None

    class Config:
        alias_generator = to_camel
        populate_by_name = True


class GeneralFeedbackRequest(BaseModel):
    """Free-form app feedback."""
    title: Optional[str] = Field(default=None, max_length=200)
    message: str = Field(..., min_length=1, max_length=2000)
    category: Optional[FeedbackCategory] = None
