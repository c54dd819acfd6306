"""
Practice Session
Client-side practice controller: serves exercises from a read-ahead queue,
submits answers and mirrors the server's adjustment-mode state.

Read-ahead: when the queue is non-empty the next exercise is served without
a network call; once fewer than READ_AHEAD_LOW_WATER_MARK items remain a
background batch is requested. Background batches are skipped while in
adjustment mode, run at most one at a time, and are discarded when the
exercise type or learning subject changed after they started.

Adjustment state is reconciled from server responses only; it is never
counted down locally.
"""
import asyncio
import logging
from collections import deque
from enum import Enum
from typing import Any, Optional
from pydantic import BaseModel

from desirable.client.api_client import ApiClient, SUBMIT_PATH
from desirable.config import Settings, get_settings
from desirable.models.progress import AdjustmentModeInfo, ExerciseType

logger = logging.getLogger(__name__)


GENERATE_PATH = "/api/practice/generate"
ENTER_ADJUSTMENT_PATH = "/api/practice/enter-adjustment-mode"
QUESTION_PATH = "/api/practice/question"


class DifficultyTrend(str, Enum):
    INCREASING = "increasing"
    DECREASING = "decreasing"
    STABLE = "stable"


class Notice(BaseModel):
    """One-time message for the user"""
    title: str
    message: str


ADJUSTMENT_ACTIVATED = Notice(
    title="Adjustment Mode Activated",
    message="The next questions will help calibrate your difficulty level."
)
ADJUSTMENT_COMPLETE = Notice(
    title="Adjustment Complete",
    message="Your difficulty level has been adjusted and fine-tuned based on your performance."
)


class PracticeSessionError(Exception):
    """Invalid session action or unusable server response"""


class PracticeSession:
    """
    Practice controller for one signed-in user.

    All methods run on a single event loop; the only concurrency is the
    background read-ahead task.
    """

    def __init__(
        self,
        api: ApiClient,
        user_id: str,
        exercise_type: Optional[ExerciseType | str] = None,
        learning_subject: Optional[str] = None,
        settings: Optional[Settings] = None
    ):
        self.api = api
        self.user_id = user_id
        self.settings = settings or get_settings()
        self.exercise_type = ExerciseType(exercise_type).value if exercise_type else None
        self.learning_subject = learning_subject or self.settings.DEFAULT_LEARNING_SUBJECT

        self.current_practice: Optional[dict] = None
        self.queue: deque[dict] = deque()
        self.adjustment_mode = AdjustmentModeInfo()
        self.feedback: Optional[dict] = None
        self.difficulty_change: Optional[dict] = None
        self.difficulty_trend = DifficultyTrend.STABLE
        self.follow_up_answer: Optional[str] = None
        self.notices: list[Notice] = []

        # Bumped whenever queued items become stale
        self._generation = 0
        self._prefetch_task: Optional[asyncio.Task] = None

    @property
    def is_prefetching(self) -> bool:
        return self._prefetch_task is not None and not self._prefetch_task.done()

    def pop_notices(self) -> list[Notice]:
        notices, self.notices = self.notices, []
        return notices

    # ==================== NEXT EXERCISE ====================

    async def request_next(self, force_new: bool = False) -> dict:
        """
        Make the next exercise current.

        Args:
            force_new: Skip the queue and generate synchronously

        Returns:
            The new current practice
        """
        self.feedback = None
        self.follow_up_answer = None

        if not force_new and self.queue:
            self.current_practice = self.queue.popleft()
            if len(self.queue) < self.settings.READ_AHEAD_LOW_WATER_MARK:
                self._schedule_prefetch()
            return self.current_practice

        batch_size = 1 if self.adjustment_mode.is_in_adjustment_mode else self.settings.READ_AHEAD_BATCH_SIZE
        response = await self.api.post(GENERATE_PATH, self._generate_body(batch_size))
        if not response or not response.get("success") or not response.get("data"):
            raise PracticeSessionError("Invalid practice data received")

        self.current_practice = response["data"]
        self._reconcile_adjustment(response)
        self._enqueue(response.get("batchItems") or [])
        return self.current_practice

    def _generate_body(self, batch_size: int) -> dict:
        body: dict[str, Any] = {
            "userId": self.user_id,
            "batchSize": batch_size,
            "learningSubject": self.learning_subject
        }
        if self.exercise_type:
            body["type"] = self.exercise_type
        return body

    def _enqueue(self, items: list[dict]) -> None:
        """Append items not already current or queued."""
        known = {item.get("id") for item in self.queue}
        if self.current_practice:
            known.add(self.current_practice.get("id"))
        for item in items:
            if item.get("id") not in known:
                self.queue.append(item)
                known.add(item.get("id"))

    def _schedule_prefetch(self) -> None:
        if self.is_prefetching or self.adjustment_mode.is_in_adjustment_mode:
            return
        self._prefetch_task = asyncio.create_task(self._prefetch(self._generation))

    async def _prefetch(self, generation: int) -> None:
        """Background batch request; failures are logged, never raised."""
        try:
            response = await self.api.post(
                GENERATE_PATH, self._generate_body(self.settings.READ_AHEAD_BATCH_SIZE)
            )
        except Exception as e:
            logger.warning(f"Background batch generation failed: {e}")
            return

        if generation != self._generation:
            logger.debug("Discarding background batch for a previous type/subject")
            return
        if not response or not response.get("success"):
            return

        self._reconcile_adjustment(response)
        if not self.adjustment_mode.is_in_adjustment_mode:
            self._enqueue(response.get("batchItems") or [])

    async def wait_for_prefetch(self) -> None:
        if self._prefetch_task is not None:
            await self._prefetch_task

    # ==================== SUBMISSION ====================

    async def submit_answer(self, answer: str) -> dict:
        """
        Submit an answer for the current exercise.

        Returns:
            {"isCorrect": bool, "feedback": str | list[str]}
        """
        if not self.current_practice:
            raise PracticeSessionError("No practice question available")
        if not answer or not answer.strip():
            raise PracticeSessionError("Please provide an answer")

        response = await self.api.post(SUBMIT_PATH, {
            "practiceId": self.current_practice["id"],
            "userAnswer": answer
        })
        response = response or {}
        data = response.get("data") or {}

        self._reconcile_adjustment(data)

        change = data.get("difficultyChange")
        self.difficulty_change = change
        if change:
            delta = change.get("change", 0)
            if delta > 0:
                self.difficulty_trend = DifficultyTrend.INCREASING
            elif delta < 0:
                self.difficulty_trend = DifficultyTrend.DECREASING
            else:
                self.difficulty_trend = DifficultyTrend.STABLE
            if change.get("exitedAdjustmentMode"):
                self.notices.append(ADJUSTMENT_COMPLETE)

        evaluation = data.get("evaluation") or {}
        self.feedback = {
            "isCorrect": bool(evaluation.get("isCorrect", response.get("isCorrect", False))),
            "feedback": evaluation.get("feedback", response.get("feedback", ""))
        }
        if response.get("practice"):
            self.current_practice = response["practice"]
        return self.feedback

    def _reconcile_adjustment(self, payload: dict) -> None:
        """Adopt the server's adjustment state when the payload carries it."""
        if "adjustmentMode" not in payload:
            return
        self.adjustment_mode = AdjustmentModeInfo(
            is_in_adjustment_mode=payload.get("adjustmentMode") is True,
            adjustment_practices_remaining=payload.get("adjustmentPracticesRemaining") or 0
        )

    # ==================== ADJUSTMENT MODE ====================

    async def enter_adjustment_mode(self) -> AdjustmentModeInfo:
        """
        Enter adjustment mode on the server, drop queued items generated at
        the old calibration, and fetch a fresh single item.
        """
        was_adjusting = self.adjustment_mode.is_in_adjustment_mode
        response = await self.api.post(ENTER_ADJUSTMENT_PATH, {"learningSubject": self.learning_subject})
        self._reconcile_adjustment(response or {})

        if self.adjustment_mode.is_in_adjustment_mode and not was_adjusting:
            self.notices.append(ADJUSTMENT_ACTIVATED)

        self._clear_queue()
        await self.request_next(force_new=True)
        return self.adjustment_mode

    # ==================== TYPE / SUBJECT ====================

    def set_exercise_type(self, exercise_type: Optional[ExerciseType | str]) -> None:
        self.exercise_type = ExerciseType(exercise_type).value if exercise_type else None
        self._clear_queue()

    def set_learning_subject(self, learning_subject: str) -> None:
        self.learning_subject = learning_subject
        self._clear_queue()

    def _clear_queue(self) -> None:
        self.queue.clear()
        self._generation += 1

    # ==================== FOLLOW-UP ====================

    async def ask_follow_up(self, question: str) -> str:
        """Ask a question about the current exercise."""
        if not question or not question.strip():
            raise PracticeSessionError("Please enter a question")
        if not self.current_practice:
            raise PracticeSessionError("No practice question available")

        response = await self.api.post(QUESTION_PATH, {
            "practiceId": self.current_practice["id"],
            "question": question
        })
        answer = (response or {}).get("answer")
        if not answer:
            raise PracticeSessionError("Failed to get an answer")
        self.follow_up_answer = answer
        return answer

    async def aclose(self) -> None:
        """Cancel any in-flight background batch."""
        if self.is_prefetching:
            self._prefetch_task.cancel()
            try:
                await self._prefetch_task
            except asyncio.CancelledError:
                pass

