"""
Base Agent
Abstract base class for all agents in the practice workflow.
Provides common interface, logging, and service access.
"""
import logging
from abc import ABC, abstractmethod
from typing import Any, TypeVar, Generic

from desirable.config import Settings, get_settings
from desirable.services.openai_service import ExerciseGenerator, exercise_generator
from desirable.services.cosmos_db_service import CosmosDBService, cosmos_db_service
from desirable.utils.progression import ProgressionEngine, progression_engine


# Type variable for agent state
StateT = TypeVar("StateT")


class BaseAgent(ABC, Generic[StateT]):
    """
    Abstract base class for all agents.

    Each agent should:
    - Handle one step of the practice workflow
    - Log its operations for debugging
    - Return updates to the shared state
    """

    def __init__(
        self,
        settings: Settings | None = None,
        generator: ExerciseGenerator | None = None,
        db_service: CosmosDBService | None = None,
        engine: ProgressionEngine | None = None
    ):
        """
        Initialize base agent with services.

        Args:
            settings: Application settings (uses singleton if not provided)
            generator: Exercise generator (uses singleton if not provided)
            db_service: Cosmos DB service (uses singleton if not provided)
            engine: Progression engine (uses singleton if not provided)
        """
        self.settings = settings or get_settings()
        self.generator = generator or exercise_generator
        self.db_service = db_service or cosmos_db_service
        self.engine = engine or progression_engine

        self.logger = logging.getLogger(f"agent.{self.name}")

    @property
    @abstractmethod
    def name(self) -> str:
        """Agent name for logging and identification"""
        pass

    @property
    @abstractmethod
    def description(self) -> str:
        """Agent description for documentation"""
        pass

    @abstractmethod
    async def process(self, state: StateT) -> StateT:
        """
        Process the current state and return updated state.

        Args:
            state: Current shared state

        Returns:
            Updated state with agent's modifications
        """
        pass

    def log_start(self, context: dict | None = None) -> None:
        """Log agent starting to process"""
        msg = f"[{self.name}] Starting processing"
        if context:
            msg += f" - Context: {context}"
        self.logger.info(msg)

    def log_complete(self, result: Any = None) -> None:
        """Log agent completed processing"""
        msg = f"[{self.name}] Processing complete"
        if result:
            msg += f" - Result: {result}"
        self.logger.info(msg)

    def log_error(self, error: Exception, context: dict | None = None) -> None:
        """Log agent error"""
        msg = f"[{self.name}] Error: {str(error)}"
        if context:
            msg += f" - Context: {context}"
        self.logger.error(msg, exc_info=True)

    def log_debug(self, message: str, data: Any = None) -> None:
        """Log debug information"""
        msg = f"[{self.name}] {message}"
        if data:
            msg += f" - Data: {data}"
        self.logger.debug(msg)

    def fail(self, state: StateT, status_code: int, message: str) -> StateT:
        """Mark the request as failed with an HTTP-mappable status."""
        self.logger.info(f"[{self.name}] Request rejected ({status_code}): {message}")
        state["has_error"] = True
        state["error_status"] = status_code
        state["error_message"] = message
        return state
