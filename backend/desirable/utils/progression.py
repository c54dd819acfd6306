"""
Progression Update Rule
Adaptive difficulty: per-type skill levels move a small step after every
evaluated answer and generation parameters follow the skill levels.

Rule applied on each evaluated answer:
- Correct answer: skill level +0.1
- Incorrect answer: skill level -0.05
- Levels are clamped to [1, 10]
- Average difficulty/complexity are exact cumulative means over all
  completed practices

Adjustment mode is a short calibration phase of N practices during which
the client requests single items instead of read-ahead batches.
"""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel

from desirable.config import settings
from desirable.models.practice import Practice
from desirable.models.progress import ExerciseType, UserProgress


class ProgressionResult(BaseModel):
    """Outcome of one progression step, reported to clients as difficultyChange"""
    exercise_type: str
    previous_level: float
    new_level: float
    change: float
    previous_complexity: float
    new_complexity: float
    complexity_change: float
    exited_adjustment_mode: bool = False
    adjustment_practices_remaining: int = 0

    def to_dict(self) -> dict:
        return {
            "exerciseType": self.exercise_type,
            "previousLevel": self.previous_level,
            "newLevel": self.new_level,
            "change": self.change,
            "previousComplexity": self.previous_complexity,
            "newComplexity": self.new_complexity,
            "complexityChange": self.complexity_change,
            "exitedAdjustmentMode": self.exited_adjustment_mode,
            "adjustmentPracticesRemaining": self.adjustment_practices_remaining
        }


def clamp_level(value: float) -> float:
    """Clamp a difficulty/complexity/skill value into [LEVEL_MIN, LEVEL_MAX]."""
    return max(settings.LEVEL_MIN, min(settings.LEVEL_MAX, value))


def derive_complexity(difficulty: float) -> float:
    """Complexity runs one step below difficulty, never under the minimum."""
    return clamp_level(difficulty - 1)


def resolve_generation_levels(
    progress: UserProgress,
    exercise_type: ExerciseType | str,
    requested_difficulty: Optional[float] = None,
    requested_complexity: Optional[float] = None
) -> tuple[float, float]:
    """
    Decide the difficulty and complexity to generate an exercise at.

    An explicit request wins; otherwise the stored skill level for the
    exercise type is used (1 if unset) and complexity is derived from it.
    """
    if requested_difficulty:
        difficulty = clamp_level(requested_difficulty)
    else:
        difficulty = progress.skill_levels.get(exercise_type) or settings.LEVEL_MIN

    if requested_complexity:
        complexity = clamp_level(requested_complexity)
    else:
        complexity = derive_complexity(difficulty)

    return difficulty, complexity


class ProgressionEngine:
    """
    Applies evaluated answers to a UserProgress record and drives the
    adjustment-mode state machine.

    All operations mutate the given record in place; persisting it is the
    caller's job.
    """

    def __init__(self):
        self.step_correct = settings.SKILL_STEP_CORRECT
        self.step_incorrect = settings.SKILL_STEP_INCORRECT
        self.adjustment_count = settings.ADJUSTMENT_PRACTICES_COUNT
        self.default_batch_size = settings.DEFAULT_BATCH_SIZE
        self.max_batch_size = settings.MAX_BATCH_SIZE

    def apply(
        self,
        progress: UserProgress,
        practice: Practice,
        is_correct: bool,
        now: Optional[datetime] = None
    ) -> ProgressionResult:
        """
        Apply one evaluated answer.

        Args:
            progress: The user's progress record (mutated)
            practice: The practice that was answered
            is_correct: Evaluation verdict
            now: Timestamp for last_activity (default: utcnow)

        Returns:
            ProgressionResult describing the level movement
        """
        now = now or datetime.utcnow()
        exercise_type = ExerciseType(practice.type)

        previous_level = progress.skill_levels.get(exercise_type)
        previous_complexity = derive_complexity(previous_level)

        skill_adjustment = self.step_correct if is_correct else -self.step_incorrect
        new_level = clamp_level(previous_level + skill_adjustment)
        progress.skill_levels.set(exercise_type, new_level)

        progress.completed_practices += 1
        n = progress.completed_practices
        progress.average_difficulty = (
            progress.average_difficulty * (n - 1) + practice.difficulty
        ) / n
        progress.average_complexity = (
            progress.average_complexity * (n - 1) + practice.complexity
        ) / n
        progress.last_activity = now

        exited = self.record_adjustment_submission(progress)

        new_complexity = derive_complexity(new_level)
        progress.current_difficulty = new_level
        progress.current_complexity = new_complexity

        return ProgressionResult(
            exercise_type=exercise_type.value,
            previous_level=previous_level,
            new_level=new_level,
            change=round(new_level - previous_level, 4),
            previous_complexity=previous_complexity,
            new_complexity=new_complexity,
            complexity_change=round(new_complexity - previous_complexity, 4),
            exited_adjustment_mode=exited,
            adjustment_practices_remaining=progress.adjustment_practices_remaining
        )

    # ==================== ADJUSTMENT MODE ====================

    def enter_adjustment_mode(self, progress: UserProgress) -> bool:
        """
        Normal -> Adjusting(N). Re-entering while adjusting keeps the
        current countdown.

        Returns:
            True if the record changed
        """
        if progress.is_in_adjustment_mode:
            return False
        progress.is_in_adjustment_mode = True
        progress.adjustment_practices_remaining = self.adjustment_count
        return True

    def record_adjustment_submission(self, progress: UserProgress) -> bool:
        """
        Count one submission against the adjustment countdown.

        Returns:
            True only on the transition back to Normal
        """
        if not progress.is_in_adjustment_mode:
            return False

        remaining = max(0, progress.adjustment_practices_remaining - 1)
        progress.adjustment_practices_remaining = remaining
        if remaining == 0:
            progress.is_in_adjustment_mode = False
            return True
        return False

    def batch_size_for(self, progress: UserProgress, requested: Optional[int] = None) -> int:
        """Single items while adjusting, otherwise the requested size within bounds."""
        if progress.is_in_adjustment_mode:
            return 1
        size = requested or self.default_batch_size
        return max(1, min(size, self.max_batch_size))


# Singleton instance
progression_engine = ProgressionEngine()
