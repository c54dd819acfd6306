"""
Practice Agent
Generates practice exercises adapted to the user's skill levels.

Responsibilities:
- Resolve difficulty/complexity from the request or stored skill levels
- Choose batch size (single items while in adjustment mode)
- Generate each exercise and store it as an open practice
"""
import asyncio
import logging
from typing import Optional
from uuid import uuid4

from desirable.agents.base_agent import BaseAgent
from desirable.agents.state import AppState, add_agent_message, get_learning_subject
from desirable.models.practice import Practice, QuestionType
from desirable.models.progress import ExerciseType, UserProgress
from desirable.utils.progression import resolve_generation_levels


logger = logging.getLogger(__name__)


def resolve_question_type(requested: Optional[str | list[str]]) -> str:
    """A list selects its first entry; nothing selects open-ended."""
    if isinstance(requested, list):
        requested = requested[0] if requested else None
    if not requested:
        return QuestionType.OPEN_ENDED.value
    return QuestionType(requested).value


class PracticeAgent(BaseAgent[AppState]):
    """
    Practice Agent for exercise generation.

    Generation never fails because of the AI provider: a provider failure
    yields the canned fallback exercise flagged with is_fallback.
    """

    @property
    def name(self) -> str:
        return "practice"

    @property
    def description(self) -> str:
        return "Generates adaptive exercises and stores them as open practices"

    async def process(self, state: AppState) -> AppState:
        """Generate a batch of practices for the requesting user"""
        user_id = state["user"]["user_id"]
        request = state["request"]
        learning_subject = get_learning_subject(state)
        self.log_start({"user_id": user_id, "learning_subject": learning_subject})

        try:
            progress_data = await self.db_service.get_user_progress(user_id, learning_subject)
            if not progress_data:
                return self.fail(state, 404, "User progress not found")
            progress = UserProgress(**progress_data)

            exercise_type = ExerciseType(request.get("exercise_type") or ExerciseType.VOCABULARY)
            difficulty, complexity = resolve_generation_levels(
                progress,
                exercise_type,
                request.get("difficulty"),
                request.get("complexity")
            )
            preferred_categories = request.get("preferred_categories") or progress.preferred_categories
            challenge_areas = request.get("challenge_areas") or progress.challenge_areas
            question_type = resolve_question_type(request.get("question_type"))
            batch_size = self.engine.batch_size_for(progress, request.get("batch_size"))

            self.log_debug("Generation parameters", {
                "type": exercise_type.value,
                "difficulty": difficulty,
                "complexity": complexity,
                "question_type": question_type,
                "batch_size": batch_size
            })

            results = await asyncio.gather(*[
                self.generator.generate(
                    exercise_type,
                    difficulty,
                    complexity,
                    preferred_categories=preferred_categories,
                    challenge_areas=challenge_areas,
                    question_type=question_type
                )
                for _ in range(batch_size)
            ])

            batch = []
            for result in results:
                practice = Practice(
                    id=uuid4().hex,
                    user_id=user_id,
                    learning_subject=learning_subject,
                    type=exercise_type,
                    content=result.content,
                    translation=result.translation,
                    categories=result.categories,
                    question_type=result.question_type,
                    options=result.options,
                    correct_answer_index=result.correct_answer_index,
                    difficulty=difficulty,
                    complexity=complexity,
                    is_fallback=result.is_fallback
                )
                stored = await self.db_service.create_practice(practice.to_document())
                batch.append(Practice(**stored).to_document())

            state["practice"] = batch[0]
            state["batch"] = batch
            state["is_fallback"] = batch[0]["isFallback"]
            state["adjustment"] = {
                "is_in_adjustment_mode": progress.is_in_adjustment_mode,
                "adjustment_practices_remaining": progress.adjustment_practices_remaining
            }

            state = add_agent_message(
                state,
                self.name,
                f"Generated {len(batch)} practice(s)",
                {"practice_ids": [item["id"] for item in batch]}
            )
            self.log_complete({"count": len(batch), "is_fallback": state["is_fallback"]})
            return state

        except Exception as e:
            self.log_error(e, {"user_id": user_id})
            return self.fail(state, 500, f"Failed to generate practice: {str(e)}")


# Singleton instance
practice_agent = PracticeAgent()
