"""
Orchestrator Agent
Central coordinator for the practice workflow using LangGraph.

Graph structure:
    router -> practice -----------------------> finalize -> END
    router -> evaluation -> progress ---------> finalize -> END
    router -> progress (adjustment mode) -----> finalize -> END
"""
import logging
from typing import Literal

from langgraph.graph import StateGraph, END

from desirable.agents.base_agent import BaseAgent
from desirable.agents.state import AppState, create_initial_state, add_agent_message
from desirable.agents.practice_agent import practice_agent
from desirable.agents.evaluation_agent import evaluation_agent
from desirable.agents.progress_agent import progress_agent
from desirable.config import Settings
from desirable.services.cosmos_db_service import cosmos_db_service


logger = logging.getLogger(__name__)


RouteType = Literal["practice", "evaluation", "progress", "complete"]


class Orchestrator(BaseAgent[AppState]):
    """
    Orchestrator Agent - routes each request through the agents it needs
    and shapes the final response.
    """

    def __init__(self, settings: Settings | None = None):
        super().__init__(settings=settings)
        self.graph = self._build_graph()
        self.compiled_graph = self.graph.compile()

    @property
    def name(self) -> str:
        return "orchestrator"

    @property
    def description(self) -> str:
        return "Coordinates practice generation, evaluation and progress updates"

    def _build_graph(self) -> StateGraph:
        graph = StateGraph(AppState)

        graph.add_node("router", self._router_node)
        graph.add_node("practice", self._practice_node)
        graph.add_node("evaluation", self._evaluation_node)
        graph.add_node("progress", self._progress_node)
        graph.add_node("finalize", self._finalize_node)

        graph.set_entry_point("router")

        graph.add_conditional_edges(
            "router",
            self._route_decision,
            {
                "practice": "practice",
                "evaluation": "evaluation",
                "progress": "progress",
                "complete": "finalize"
            }
        )

        # Only a successfully closed practice moves on to progress
        graph.add_conditional_edges(
            "evaluation",
            self._post_evaluation_route,
            {
                "progress": "progress",
                "complete": "finalize"
            }
        )

        graph.add_edge("practice", "finalize")
        graph.add_edge("progress", "finalize")
        graph.add_edge("finalize", END)

        return graph

    async def process(self, state: AppState) -> AppState:
        """Process a request through the agent workflow."""
        self.log_start({
            "request_type": state.get("request_type"),
            "user_id": state["user"]["user_id"]
        })

        try:
            final_state = await self.compiled_graph.ainvoke(state)

            self.log_complete({
                "is_complete": final_state.get("is_complete"),
                "has_error": final_state.get("has_error")
            })
            return final_state

        except Exception as e:
            self.log_error(e)
            state["has_error"] = True
            state["error_status"] = 500
            state["error_message"] = f"Orchestrator error: {str(e)}"
            state["is_complete"] = True
            return state

    async def run(
        self,
        user_id: str,
        request_type: str,
        input_data: dict | None = None
    ) -> AppState:
        """
        Run the orchestrator with a new request.

        Args:
            user_id: Authenticated user making the request
            request_type: generate_practice, submit_answer or enter_adjustment_mode
            input_data: Request parameters

        Returns:
            Final state after processing
        """
        user_data = await cosmos_db_service.get_user(user_id)
        state = create_initial_state(user_id, request_type, user_data, input_data)
        return await self.process(state)

    # ==================== ROUTER NODE ====================

    async def _router_node(self, state: AppState) -> AppState:
        """Router node - decides which agent to invoke."""
        request_type = state.get("request_type", "")
        self.log_debug("Router processing", {"request_type": request_type})

        if request_type == "generate_practice":
            state["route_decision"] = "practice"
        elif request_type == "submit_answer":
            state["route_decision"] = "evaluation"
        elif request_type == "enter_adjustment_mode":
            state["route_decision"] = "progress"
        else:
            state["route_decision"] = "complete"
            self.fail(state, 400, f"Unknown request type: {request_type}")

        return add_agent_message(state, self.name, f"Routing to: {state['route_decision']}")

    def _route_decision(self, state: AppState) -> RouteType:
        return state.get("route_decision") or "complete"

    def _post_evaluation_route(self, state: AppState) -> Literal["progress", "complete"]:
        if state.get("has_error"):
            return "complete"
        return "progress"

    # ==================== AGENT NODES ====================

    async def _practice_node(self, state: AppState) -> AppState:
        return await practice_agent.process(state)

    async def _evaluation_node(self, state: AppState) -> AppState:
        return await evaluation_agent.process(state)

    async def _progress_node(self, state: AppState) -> AppState:
        return await progress_agent.process(state)

    # ==================== FINALIZE NODE ====================

    async def _finalize_node(self, state: AppState) -> AppState:
        """Finalize node - shape the response for the request type."""
        state["is_complete"] = True

        if state.get("has_error"):
            state["response"] = {
                "success": False,
                "message": state.get("error_message")
            }
            return add_agent_message(state, self.name, "Processing failed")

        request_type = state.get("request_type")
        if request_type == "generate_practice":
            response = {
                "success": True,
                "data": state["practice"],
                "batchItems": state["batch"],
                "isFallback": state["is_fallback"]
            }
        elif request_type == "submit_answer":
            evaluation = state["evaluation"]
            data = {
                "evaluation": {
                    "isCorrect": evaluation["is_correct"],
                    "feedback": evaluation["feedback"],
                    "isFallback": evaluation["is_fallback"]
                },
                "difficultyChange": state["difficulty_change"]
            }
            data.update(self._adjustment_fields(state))
            response = {
                "success": True,
                "practice": state["practice"],
                "feedback": evaluation["feedback"],
                "isCorrect": evaluation["is_correct"],
                "progressUpdated": state["progress_updated"],
                "data": data
            }
        else:
            response = {"success": True}

        if request_type != "submit_answer":
            response.update(self._adjustment_fields(state))

        state["response"] = response
        return add_agent_message(state, self.name, "Processing complete")

    @staticmethod
    def _adjustment_fields(state: AppState) -> dict:
        adjustment = state.get("adjustment")
        if adjustment is None:
            return {}
        return {
            "adjustmentMode": adjustment["is_in_adjustment_mode"],
            "adjustmentPracticesRemaining": adjustment["adjustment_practices_remaining"]
        }


# Singleton instance
orchestrator = Orchestrator()


async def run_orchestrator(
    user_id: str,
    request_type: str,
    input_data: dict | None = None
) -> AppState:
    """
    Run the orchestrator with a request.

    Example:
        >>> state = await run_orchestrator(
        ...     user_id="user123",
        ...     request_type="generate_practice",
        ...     input_data={"exercise_type": "grammar"}
        ... )
        >>> print(state["response"]["data"])
    """
    return await orchestrator.run(user_id, request_type, input_data)
