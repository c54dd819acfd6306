"""
Agents Module
Practice workflow built on LangGraph.

Available Agents:
- Orchestrator: Routes requests through the graph
- Practice: Adaptive exercise generation
- Evaluation: Answer evaluation and practice closing
- Progress: Skill level updates and adjustment mode
"""

# Base classes
from desirable.agents.base_agent import BaseAgent

# Shared state
from desirable.agents.state import (
    AppState,
    UserState,
    PracticeInput,
    EvaluationState,
    AdjustmentState,
    AgentMessage,
    create_initial_state,
    add_agent_message
)

# Agents
from desirable.agents.practice_agent import PracticeAgent, practice_agent
from desirable.agents.evaluation_agent import EvaluationAgent, evaluation_agent
from desirable.agents.progress_agent import ProgressAgent, progress_agent
from desirable.agents.orchestrator import Orchestrator, orchestrator, run_orchestrator

__all__ = [
    "BaseAgent",
    "AppState", "UserState", "PracticeInput", "EvaluationState",
    "AdjustmentState", "AgentMessage", "create_initial_state", "add_agent_message",
    "PracticeAgent", "practice_agent",
    "EvaluationAgent", "evaluation_agent",
    "ProgressAgent", "progress_agent",
    "Orchestrator", "orchestrator", "run_orchestrator"
]
