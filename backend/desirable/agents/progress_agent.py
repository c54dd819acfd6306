"""
Progress Agent
Applies evaluated answers and adjustment-mode entry to UserProgress.

Responsibilities:
- Run the progression update rule after each evaluated answer
- Count down adjustment mode and report the exit edge
- Enter adjustment mode on request

Concurrent submissions by the same user race only on UserProgress. Every
write is a compare-and-set on the document ETag; on conflict the record is
re-read and the change re-applied, up to PROGRESS_UPDATE_MAX_ATTEMPTS.
"""
import logging
from typing import Any, Callable, Optional

from desirable.agents.base_agent import BaseAgent
from desirable.agents.state import AppState, add_agent_message, get_learning_subject
from desirable.models.practice import Practice
from desirable.models.progress import UserProgress
from desirable.services.cosmos_db_service import ConcurrencyConflictError


logger = logging.getLogger(__name__)


class ProgressAgent(BaseAgent[AppState]):
    """Progress Agent for skill level and adjustment-mode updates"""

    @property
    def name(self) -> str:
        return "progress"

    @property
    def description(self) -> str:
        return "Updates skill levels, running averages and adjustment mode"

    async def process(self, state: AppState) -> AppState:
        """Process progress request"""
        self.log_start({
            "user_id": state["user"]["user_id"],
            "request_type": state.get("request_type")
        })

        if state.get("request_type") == "enter_adjustment_mode":
            return await self._enter_adjustment_mode(state)
        return await self._apply_submission(state)

    async def update_with_retry(
        self,
        user_id: str,
        learning_subject: str,
        mutate: Callable[[UserProgress], tuple[bool, Any]]
    ) -> tuple[Optional[UserProgress], Any]:
        """
        Read-modify-write a progress record with optimistic concurrency.

        Args:
            user_id: Owner of the record
            learning_subject: Subject the record is scoped to
            mutate: Applies the change in place, returns (changed, result)

        Returns:
            (stored progress, mutate result), or (None, None) if no record exists

        Raises:
            ConcurrencyConflictError: Every attempt lost the race
        """
        max_attempts = self.settings.PROGRESS_UPDATE_MAX_ATTEMPTS
        for attempt in range(1, max_attempts + 1):
            progress_data = await self.db_service.get_user_progress(user_id, learning_subject)
            if not progress_data:
                return None, None

            progress = UserProgress(**progress_data)
            changed, result = mutate(progress)
            if not changed:
                return progress, result

            try:
                stored = await self.db_service.replace_user_progress(
                    progress.to_document(), etag=progress.etag
                )
                return UserProgress(**stored), result
            except ConcurrencyConflictError:
                self.log_debug(
                    f"Progress write conflict (attempt {attempt}/{max_attempts})",
                    {"user_id": user_id}
                )

        raise ConcurrencyConflictError(
            f"Progress for {user_id} kept changing after {max_attempts} attempts"
        )

    async def _apply_submission(self, state: AppState) -> AppState:
        """
        Apply the evaluated answer to the owner's progress.

        Practice and progress are not written atomically: if this step
        fails the practice stays closed and the response reports
        progressUpdated false.
        """
        practice = Practice(**state["practice"])
        is_correct = state["evaluation"]["is_correct"]
        user_id = practice.user_id

        def apply(progress: UserProgress) -> tuple[bool, Any]:
            return True, self.engine.apply(progress, practice, is_correct)

        try:
            progress, result = await self.update_with_retry(
                user_id, practice.learning_subject, apply
            )
        except Exception as e:
            self.log_error(e, {"user_id": user_id, "practice_id": practice.id})
            state["progress_updated"] = False
            state["difficulty_change"] = None
            return state

        if progress is None:
            self.logger.warning(f"[{self.name}] No progress record for user {user_id}")
            state["progress_updated"] = False
            state["difficulty_change"] = None
            return state

        state["progress_updated"] = True
        state["difficulty_change"] = result.to_dict()
        state["adjustment"] = {
            "is_in_adjustment_mode": progress.is_in_adjustment_mode,
            "adjustment_practices_remaining": progress.adjustment_practices_remaining
        }

        state = add_agent_message(
            state,
            self.name,
            "Progress updated",
            {"new_level": result.new_level, "exited_adjustment_mode": result.exited_adjustment_mode}
        )
        self.log_complete(result.to_dict())
        return state

    async def _enter_adjustment_mode(self, state: AppState) -> AppState:
        """Enter adjustment mode; re-entering keeps the running countdown."""
        user_id = state["user"]["user_id"]
        learning_subject = get_learning_subject(state)

        def enter(progress: UserProgress) -> tuple[bool, Any]:
            changed = self.engine.enter_adjustment_mode(progress)
            return changed, changed

        try:
            progress, entered = await self.update_with_retry(user_id, learning_subject, enter)
        except ConcurrencyConflictError as e:
            self.log_error(e, {"user_id": user_id})
            return self.fail(state, 409, "Progress was modified concurrently, please retry")
        except Exception as e:
            self.log_error(e, {"user_id": user_id})
            return self.fail(state, 500, f"Failed to enter adjustment mode: {str(e)}")

        if progress is None:
            return self.fail(state, 404, "User progress not found")

        state["adjustment"] = {
            "is_in_adjustment_mode": progress.is_in_adjustment_mode,
            "adjustment_practices_remaining": progress.adjustment_practices_remaining
        }
        state = add_agent_message(
            state,
            self.name,
            "Entered adjustment mode" if entered else "Already in adjustment mode"
        )
        self.log_complete(state["adjustment"])
        return state


# Singleton instance
progress_agent = ProgressAgent()
