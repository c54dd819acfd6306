"""
Progress Models
Defines per-user skill levels, running averages and adjustment-mode state.
"""
from datetime import datetime
from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel


class ExerciseType(str, Enum):
    """Type of practice exercise"""
    VOCABULARY = "vocabulary"
    GRAMMAR = "grammar"
    CONVERSATION = "conversation"
    READING = "reading"
    LISTENING = "listening"


class SkillLevels(BaseModel):
    """Skill level per exercise type, each in [1, 10]"""
    vocabulary: float = Field(default=1, ge=1, le=10)
    grammar: float = Field(default=1, ge=1, le=10)
    conversation: float = Field(default=1, ge=1, le=10)
    reading: float = Field(default=1, ge=1, le=10)
    listening: float = Field(default=1, ge=1, le=10)

    def get(self, exercise_type: ExerciseType | str) -> float:
        return getattr(self, ExerciseType(exercise_type).value)

    def set(self, exercise_type: ExerciseType | str, level: float) -> None:
        setattr(self, ExerciseType(exercise_type).value, level)


class AdjustmentModeInfo(BaseModel):
    """Adjustment-mode state as reported to clients"""
    is_in_adjustment_mode: bool = False
    adjustment_practices_remaining: int = Field(default=0, ge=0)

    class Config:
        alias_generator = to_camel
        populate_by_name = True


class UserProgress(BaseModel):
    """
    Progress record for one user and learning subject.

    Created at registration with all levels at 1 and mutated
    only through answer evaluation and adjustment-mode entry.
    """
    id: str
    user_id: str
    learning_subject: str = Field(default="dutch")

    skill_levels: SkillLevels = Field(default_factory=SkillLevels)
    current_difficulty: float = Field(default=1, ge=1, le=10)
    current_complexity: float = Field(default=1, ge=1, le=10)

    # Running (cumulative) statistics
    completed_practices: int = Field(default=0, ge=0)
    average_difficulty: float = Field(default=1)
    average_complexity: float = Field(default=1)

    # Adjustment mode
    is_in_adjustment_mode: bool = Field(default=False)
    adjustment_practices_remaining: int = Field(default=0, ge=0)

    # Onboarding preferences (bias generation only)
    preferred_categories: list[str] = Field(default_factory=list)
    challenge_areas: list[str] = Field(default_factory=list)

    practice_streak: int = Field(default=0)
    last_activity: Optional[datetime] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)

    # Document ETag, used for compare-and-set writes
    etag: Optional[str] = Field(default=None, alias="_etag", exclude=True)

    class Config:
        alias_generator = to_camel
        populate_by_name = True

    @property
    def adjustment_mode(self) -> AdjustmentModeInfo:
        return AdjustmentModeInfo(
            is_in_adjustment_mode=self.is_in_adjustment_mode,
            adjustment_practices_remaining=self.adjustment_practices_remaining
        )

    def to_document(self) -> dict:
        """Convert to a camelCase dictionary for storage"""
        return self.model_dump(by_alias=True, mode="json")

    @classmethod
    def progress_id(cls, user_id: str, learning_subject: str) -> str:
        return f"progress_{user_id}_{learning_subject}"

    @classmethod
    def initial(cls, user_id: str, learning_subject: str = "dutch") -> "UserProgress":
        """Create the registration-time record with every level at 1"""
        return cls(
            id=cls.progress_id(user_id, learning_subject),
            user_id=user_id,
            learning_subject=learning_subject,
            last_activity=datetime.utcnow()
        )
