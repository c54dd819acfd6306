"""
Evaluation Agent
Evaluates a submitted answer and closes the practice.

A practice accepts exactly one answer. The close is written with the ETag
read before evaluation, so of two racing submissions only one succeeds.
"""
import logging
from datetime import datetime

from desirable.agents.base_agent import BaseAgent
from desirable.agents.state import AppState, add_agent_message
from desirable.models.practice import Practice
from desirable.services.cosmos_db_service import ConcurrencyConflictError


logger = logging.getLogger(__name__)


class EvaluationAgent(BaseAgent[AppState]):
    """Evaluation Agent for answer submission"""

    @property
    def name(self) -> str:
        return "evaluation"

    @property
    def description(self) -> str:
        return "Evaluates answers and closes practices"

    async def process(self, state: AppState) -> AppState:
        """Evaluate the submitted answer for state['request']['practice_id']"""
        user_id = state["user"]["user_id"]
        practice_id = state["request"].get("practice_id")
        answer = state["request"].get("answer", "")
        self.log_start({"user_id": user_id, "practice_id": practice_id})

        try:
            practice_data = await self.db_service.get_practice(practice_id)
            if not practice_data:
                return self.fail(state, 404, "Practice not found")

            practice = Practice(**practice_data)
            if practice.user_id != user_id:
                return self.fail(state, 403, "Not allowed to submit an answer for another user's practice")
            if practice.is_closed:
                return self.fail(state, 409, "Practice has already been submitted")

            evaluation = await self.generator.evaluate(
                practice.content,
                answer,
                practice.type,
                practice.difficulty,
                mother_language=state["user"].get("mother_language")
            )
            if evaluation.is_fallback:
                self.logger.warning(f"[{self.name}] Fallback evaluation for practice {practice_id}")

            practice.user_answer = answer
            practice.is_correct = evaluation.is_correct
            practice.feedback = evaluation.feedback
            practice.completed_at = datetime.utcnow()

            try:
                stored = await self.db_service.close_practice(practice.to_document(), etag=practice.etag)
            except ConcurrencyConflictError:
                return self.fail(state, 409, "Practice has already been submitted")

            state["practice"] = Practice(**stored).to_document()
            state["evaluation"] = {
                "is_correct": evaluation.is_correct,
                "feedback": evaluation.feedback,
                "is_fallback": evaluation.is_fallback
            }

            state = add_agent_message(
                state,
                self.name,
                "Answer evaluated",
                {"practice_id": practice_id, "is_correct": evaluation.is_correct}
            )
            self.log_complete({"is_correct": evaluation.is_correct})
            return state

        except Exception as e:
            self.log_error(e, {"practice_id": practice_id})
            return self.fail(state, 500, f"Failed to submit answer: {str(e)}")


# Singleton instance
evaluation_agent = EvaluationAgent()
