"""
Agent State
Defines the shared state structure for the LangGraph practice workflow.
All agents read from and write to this state.
"""
from datetime import datetime
from typing import Optional, Literal
from typing_extensions import TypedDict


RequestType = Literal[
    "generate_practice",
    "submit_answer",
    "enter_adjustment_mode"
]


class UserState(TypedDict, total=False):
    """User-related state"""
    user_id: str
    name: str
    mother_language: str
    learning_subject: str


class PracticeInput(TypedDict, total=False):
    """Request parameters; unset keys fall back to stored progress"""
    learning_subject: str
    exercise_type: str
    difficulty: Optional[float]
    complexity: Optional[float]
    preferred_categories: Optional[list[str]]
    challenge_areas: Optional[list[str]]
    question_type: Optional[str | list[str]]
    batch_size: Optional[int]
    practice_id: str
    answer: str


class EvaluationState(TypedDict, total=False):
    """Verdict on the submitted answer"""
    is_correct: bool
    feedback: str | list[str]
    is_fallback: bool


class AdjustmentState(TypedDict):
    """Server-authoritative adjustment-mode state"""
    is_in_adjustment_mode: bool
    adjustment_practices_remaining: int


class AgentMessage(TypedDict):
    """Message from an agent"""
    agent: str
    message: str
    timestamp: str
    data: Optional[dict]


class AppState(TypedDict, total=False):
    """
    Main application state shared across all agents.

    LangGraph uses this for state management between nodes.
    """

    # ==================== REQUEST CONTEXT ====================
    request_id: str
    request_type: RequestType
    timestamp: str

    # ==================== USER STATE ====================
    user: UserState
    request: PracticeInput

    # ==================== PRACTICE ====================
    # Stored practice documents (camelCase, as persisted)
    practice: Optional[dict]
    batch: list[dict]
    is_fallback: bool

    # ==================== SUBMISSION ====================
    evaluation: Optional[EvaluationState]
    # Progression result (camelCase) or None when progress was not updated
    difficulty_change: Optional[dict]
    progress_updated: bool
    # None when the current adjustment state is unknown
    adjustment: Optional[AdjustmentState]

    # ==================== AGENT COORDINATION ====================
    route_decision: Optional[str]
    messages: list[AgentMessage]
    response: dict

    # ==================== CONTROL FLAGS ====================
    is_complete: bool
    has_error: bool
    error_status: Optional[int]
    error_message: Optional[str]


def create_initial_state(
    user_id: str,
    request_type: str,
    user_data: dict | None = None,
    input_data: dict | None = None
) -> AppState:
    """
    Create initial state for a new request.

    Args:
        user_id: User ID for the request
        request_type: Type of request being made
        user_data: Optional stored user document
        input_data: Optional request parameters

    Returns:
        Initialized AppState
    """
    state: AppState = {
        # Request context
        "request_id": f"req_{user_id}_{datetime.utcnow().timestamp()}",
        "request_type": request_type,
        "timestamp": datetime.utcnow().isoformat(),

        # User state
        "user": {
            "user_id": user_id,
            "mother_language": "English",
            "learning_subject": "dutch"
        },
        "request": dict(input_data or {}),

        # Practice
        "practice": None,
        "batch": [],
        "is_fallback": False,

        # Submission
        "evaluation": None,
        "difficulty_change": None,
        "progress_updated": False,
        "adjustment": None,

        # Agent coordination
        "route_decision": None,
        "messages": [],
        "response": {},

        # Control flags
        "is_complete": False,
        "has_error": False,
        "error_status": None,
        "error_message": None
    }

    if user_data:
        state["user"].update({
            "name": user_data.get("name", ""),
            "mother_language": user_data.get("motherLanguage") or "English",
            "learning_subject": user_data.get("learningSubject") or "dutch"
        })

    return state


def add_agent_message(
    state: AppState,
    agent: str,
    message: str,
    data: dict | None = None
) -> AppState:
    """Add a message from an agent to the state."""
    msg: AgentMessage = {
        "agent": agent,
        "message": message,
        "timestamp": datetime.utcnow().isoformat(),
        "data": data
    }
    state["messages"].append(msg)
    return state


def get_learning_subject(state: AppState) -> str:
    """The subject a request applies to: explicit request value, else the user's."""
    return state["request"].get("learning_subject") or state["user"].get("learning_subject") or "dutch"
