"""
Practice Schemas
Request schemas for practice API endpoints. Bodies use camelCase on the wire.
"""
from typing import Optional
from pydantic import BaseModel, Field, model_validator
from pydantic.alias_generators import to_camel

from desirable.models.practice import QuestionType
from desirable.models.progress import ExerciseType


class _CamelRequest(BaseModel):
    class Config:
        alias_generator = to_camel
        populate_by_name = True


class GeneratePracticeRequest(_CamelRequest):
    """Request to generate one or more practices."""
    user_id: Optional[str] = Field(
        default=None,
        description="Must match the authenticated user when given"
    )
    type: ExerciseType = Field(default=ExerciseType.VOCABULARY)
    difficulty: Optional[float] = Field(default=None, ge=1, le=10)
    complexity: Optional[float] = Field(default=None, ge=1, le=10)
    preferred_categories: Optional[list[str]] = None
    challenge_areas: Optional[list[str]] = None
    question_type: Optional[QuestionType | list[QuestionType]] = Field(
        default=None,
        description="A list selects its first entry"
    )
    batch_size: Optional[int] = Field(default=None, ge=1, le=5)
    learning_subject: Optional[str] = None

    def to_input(self) -> dict:
        question_type = self.question_type
        if isinstance(question_type, list):
            question_type = [item.value for item in question_type]
        elif question_type is not None:
            question_type = question_type.value
        return {
            "exercise_type": self.type.value,
            "difficulty": self.difficulty,
            "complexity": self.complexity,
            "preferred_categories": self.preferred_categories,
            "challenge_areas": self.challenge_areas,
            "question_type": question_type,
            "batch_size": self.batch_size,
            "learning_subject": self.learning_subject
        }


class SubmitAnswerRequest(_CamelRequest):
    """Answer submission. Accepts `answer` or `userAnswer`."""
    practice_id: str = Field(..., min_length=1)
    answer: Optional[str] = None
    user_answer: Optional[str] = None

    @model_validator(mode="after")
    def require_answer(self) -> "SubmitAnswerRequest":
        if not self.resolved_answer:
            raise ValueError("An answer is required")
        return self

    @property
    def resolved_answer(self) -> str:
        for value in (self.answer, self.user_answer):
            if value and value.strip():
                return value.strip()
        return ""


class EnterAdjustmentModeRequest(_CamelRequest):
    learning_subject: Optional[str] = None


class FollowUpQuestionRequest(_CamelRequest):
    """A learner's question about a practice."""
    practice_id: str = Field(..., min_length=1)
    question: str = Field(..., min_length=1, max_length=1000)


class PreferencesRequest(_CamelRequest):
    """Onboarding preferences that bias generation."""
    preferred_categories: list[str] = Field(default_factory=list)
    challenge_areas: list[str] = Field(default_factory=list)
    learning_subject: Optional[str] = None
