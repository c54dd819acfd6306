"""
Practice Models
Defines a generated exercise and its submission result.
"""
from datetime import datetime
from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel

from desirable.models.progress import ExerciseType


class QuestionType(str, Enum):
    """Question format requested from the generator"""
    OPEN_ENDED = "open-ended"
    MULTIPLE_CHOICE = "multiple-choice"
    FILL_IN_BLANK = "fill-in-blank"


class Practice(BaseModel):
    """
    One generated exercise.

    A practice is open until an answer is submitted; submission sets
    user_answer, is_correct and completed_at together and closes it.
    difficulty and complexity are snapshots taken at generation time.
    """
    id: str
    user_id: str
    learning_subject: str = Field(default="dutch")
    type: ExerciseType = ExerciseType.VOCABULARY

    # Exercise payload
    content: str | list[str]
    translation: Optional[str | list[str]] = None
    categories: list[str] = Field(default_factory=list)
    question_type: str = Field(default=QuestionType.OPEN_ENDED.value)
    options: list[str] = Field(default_factory=list)
    correct_answer_index: Optional[int] = None

    # Levels at generation time
    difficulty: float = Field(..., ge=1, le=10)
    complexity: float = Field(..., ge=1, le=10)

    # True when the canned exercise was served instead of a generated one
    is_fallback: bool = Field(default=False)

    # Submission
    user_answer: Optional[str] = None
    is_correct: Optional[bool] = None
    feedback: Optional[str | list[str]] = None
    completed_at: Optional[datetime] = None

    created_at: datetime = Field(default_factory=datetime.utcnow)
    etag: Optional[str] = Field(default=None, alias="_etag", exclude=True)

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        use_enum_values = True

    @property
    def is_closed(self) -> bool:
        return self.user_answer is not None

    def to_document(self) -> dict:
        """Convert to a camelCase dictionary for storage"""
        return self.model_dump(by_alias=True, mode="json")
