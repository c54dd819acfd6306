"""
OpenAI Exercise Generator
Generates Dutch practice exercises and evaluates learner answers through an
OpenAI-compatible chat completions endpoint (OpenAI, DeepSeek).

Provider failures never propagate to callers: generation degrades to a
canned exercise and evaluation to a generic "could not evaluate" verdict,
flagged with is_fallback so callers can tell them apart from real output.
"""
import json
import logging
import random
from typing import Any, Optional
from openai import AsyncOpenAI
from pydantic import BaseModel, Field

from desirable.config import settings
from desirable.models.practice import QuestionType
from desirable.models.progress import ExerciseType

logger = logging.getLogger(__name__)


FALLBACK_CONTENT = "Hallo, hoe gaat het met je?"
FALLBACK_TRANSLATION = "Hello, how are you?"
FALLBACK_CATEGORIES = ["greetings", "basic conversation"]
FALLBACK_EVALUATION_FEEDBACK = "Sorry, we could not evaluate your answer at this time."
FALLBACK_FOLLOW_UP_ANSWER = "Sorry, we could not answer your question at this time."


class GenerationError(Exception):
    """Raised internally when the provider response cannot be used"""


class EvaluationError(Exception):
    """Raised internally when an evaluation response cannot be used"""


class GenerationResult(BaseModel):
    """Generated exercise content, or the canned fallback"""
    content: str | list[str]
    translation: Optional[str | list[str]] = None
    categories: list[str] = Field(default_factory=list)
    question_type: str = QuestionType.OPEN_ENDED.value
    options: list[str] = Field(default_factory=list)
    correct_answer_index: Optional[int] = None
    is_fallback: bool = False
    error: Optional[str] = None

    @classmethod
    def success_result(cls, **data) -> "GenerationResult":
        return cls(is_fallback=False, **data)

    @classmethod
    def fallback_result(cls, question_type: str, error: str) -> "GenerationResult":
        return cls(
            content=FALLBACK_CONTENT,
            translation=FALLBACK_TRANSLATION,
            categories=list(FALLBACK_CATEGORIES),
            question_type=question_type,
            is_fallback=True,
            error=error
        )


class EvaluationResult(BaseModel):
    """Verdict on a learner answer, or the generic fallback verdict"""
    is_correct: bool
    feedback: str | list[str]
    is_fallback: bool = False
    error: Optional[str] = None

    @classmethod
    def success_result(cls, is_correct: bool, feedback: str | list[str]) -> "EvaluationResult":
        return cls(is_correct=is_correct, feedback=feedback, is_fallback=False)

    @classmethod
    def fallback_result(cls, error: str) -> "EvaluationResult":
        return cls(
            is_correct=False,
            feedback=FALLBACK_EVALUATION_FEEDBACK,
            is_fallback=True,
            error=error
        )


def parse_json_response(response: str) -> dict:
    """Parse a JSON object, tolerating prose around the outermost braces."""
    try:
        parsed = json.loads(response)
    except (json.JSONDecodeError, TypeError):
        if not response:
            raise GenerationError("Empty response from AI provider")
        start = response.find('{')
        end = response.rfind('}') + 1
        if start == -1 or end <= start:
            raise GenerationError("Failed to parse JSON from AI response")
        try:
            parsed = json.loads(response[start:end])
        except json.JSONDecodeError as e:
            raise GenerationError(f"Failed to parse JSON from AI response: {e}")

    if not isinstance(parsed, dict):
        raise GenerationError("AI response is not a JSON object")
    return parsed


def shuffle_options(options: list[str], rng: Optional[random.Random] = None) -> tuple[list[str], int]:
    """
    Shuffle multiple-choice options. The provider lists the correct
    answer first.

    Returns:
        (shuffled options, index of the correct answer)
    """
    correct_answer = options[0]
    shuffled = list(options)
    (rng or random).shuffle(shuffled)
    return shuffled, shuffled.index(correct_answer)


def _band(level: float, low: str, mid: str, high: str) -> str:
    if level <= 3:
        return low
    if level <= 6:
        return mid
    return high


class ExerciseGenerator:
    """Exercise generation and answer evaluation over an LLM"""

    def __init__(self, client: Optional[AsyncOpenAI] = None):
        self._client = client
        self.model = settings.ai_model
        self.max_tokens = settings.OPENAI_MAX_TOKENS
        self.temperature = settings.OPENAI_TEMPERATURE

    @property
    def client(self) -> AsyncOpenAI:
        """Lazily build the client; without a key, generation falls back."""
        if self._client is None:
            api_key = settings.ai_api_key
            if not api_key:
                raise GenerationError("AI provider API key is not configured")
            self._client = AsyncOpenAI(
                api_key=api_key,
                base_url=settings.ai_base_url,
                timeout=settings.OPENAI_TIMEOUT_SECONDS
            )
            logger.info(f"AI client ready (provider={settings.AI_PROVIDER}, model={self.model})")
        return self._client

    async def chat_completion(
        self,
        messages: list[dict],
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None
    ) -> str:
        """
        Send a chat completion request.

        Args:
            messages: List of message dicts with 'role' and 'content'
            max_tokens: Override default max_tokens
            temperature: Override default temperature

        Returns:
            The assistant's response text
        """
        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=messages,
                max_tokens=max_tokens or self.max_tokens,
                temperature=temperature or self.temperature
            )
            return response.choices[0].message.content
        except Exception as e:
            logger.error(f"Chat completion error: {e}")
            raise

    # ==================== GENERATION ====================

    def build_generation_prompt(
        self,
        exercise_type: str,
        difficulty: float,
        complexity: float,
        question_type: str,
        preferred_categories: Optional[list[str]] = None,
        challenge_areas: Optional[list[str]] = None
    ) -> str:
        categories_str = ""
        if preferred_categories:
            categories_str = f"focusing on these categories: {', '.join(preferred_categories)}"
        challenge_str = ""
        if challenge_areas:
            challenge_str = f"with extra attention to these challenging areas: {', '.join(challenge_areas)}"

        question_type_instructions = ""
        response_format_instructions = ""
        if question_type == QuestionType.MULTIPLE_CHOICE.value:
            question_type_instructions = (
                "Create a multiple-choice question with 4 options, where only one is correct.\n"
                "The options should be provided in the \"options\" field of your response.\n"
                "The first option should be the correct answer."
            )
            response_format_instructions = (
                ',\n    "options": ["correct answer", "wrong option 1", "wrong option 2", "wrong option 3"]'
            )
        elif question_type == QuestionType.FILL_IN_BLANK.value:
            question_type_instructions = (
                "Create a fill-in-the-blank question with one or more blanks that the user needs to complete.\n"
                "Mark the blanks with underscores in the content."
            )

        vocabulary = _band(difficulty, "basic and common", "intermediate", "advanced")
        grammar = _band(
            difficulty,
            "simple present tense mostly",
            "include past tenses and modal verbs",
            "include complex verb forms and conditionals"
        )
        structure = _band(difficulty, "simple", "compound", "complex with subordinate clauses")
        practice_format = _band(
            complexity,
            "straightforward with direct questions",
            "include some contextual elements",
            "situated in complex scenarios"
        )

        return f"""Create a {exercise_type} practice at difficulty level {difficulty:.1f}/10 and complexity level {complexity:.1f}/10 for a Dutch language learner.
The question type should be: {question_type}.
{question_type_instructions}

{categories_str}
{challenge_str}

Guidelines for difficulty level {difficulty:.1f}/10:
- Vocabulary should be {vocabulary}
- Grammar should be {grammar}
- Sentence structure should be {structure}

Guidelines for complexity level {complexity:.1f}/10:
- Practice format should be {practice_format}

Respond in JSON format:
{{
    "content": "the practice content in Dutch",
    "translation": "English translation of the content if applicable",
    "categories": ["category1", "category2"],
    "questionType": "{question_type}"{response_format_instructions}
}}"""

    async def generate(
        self,
        exercise_type: ExerciseType | str,
        difficulty: float,
        complexity: float,
        preferred_categories: Optional[list[str]] = None,
        challenge_areas: Optional[list[str]] = None,
        question_type: str = QuestionType.OPEN_ENDED.value
    ) -> GenerationResult:
        """
        Generate one exercise.

        Args:
            exercise_type: vocabulary, grammar, conversation, reading, listening
            difficulty: Difficulty level (1-10)
            complexity: Complexity level (1-10)
            preferred_categories: Topic tags to bias towards
            challenge_areas: Weak areas to emphasize
            question_type: open-ended, multiple-choice, fill-in-blank

        Returns:
            GenerationResult (fallback exercise on any provider failure)
        """
        exercise_type = ExerciseType(exercise_type).value
        prompt = self.build_generation_prompt(
            exercise_type, difficulty, complexity, question_type,
            preferred_categories, challenge_areas
        )
        messages = [
            {"role": "system", "content": "You are a Dutch language teacher creating practice exercises. Always respond with valid JSON."},
            {"role": "user", "content": prompt}
        ]

        try:
            response = await self.chat_completion(messages)
            parsed = parse_json_response(response)
            return self._to_generation_result(parsed, question_type)
        except Exception as e:
            logger.warning(f"Exercise generation failed, serving fallback: {e}")
            return GenerationResult.fallback_result(question_type, str(e))

    def _to_generation_result(self, parsed: dict[str, Any], question_type: str) -> GenerationResult:
        content = parsed.get("content")
        if not content:
            raise GenerationError("AI response has no content")

        categories = parsed.get("categories") or []
        if isinstance(categories, str):
            categories = [categories]

        options = [str(option) for option in parsed.get("options") or []]
        correct_answer_index = None
        if question_type == QuestionType.MULTIPLE_CHOICE.value and options:
            options, correct_answer_index = shuffle_options(options)

        return GenerationResult.success_result(
            content=content,
            translation=parsed.get("translation"),
            categories=[str(category) for category in categories],
            question_type=question_type,
            options=options,
            correct_answer_index=correct_answer_index
        )

    # ==================== EVALUATION ====================

    async def evaluate(
        self,
        content: str | list[str],
        user_answer: str,
        exercise_type: ExerciseType | str,
        difficulty: float,
        mother_language: Optional[str] = None
    ) -> EvaluationResult:
        """
        Evaluate a learner answer.

        Returns:
            EvaluationResult (is_correct=False with an apology on failure)
        """
        if isinstance(content, list):
            content = "\n".join(content)
        feedback_language = mother_language or settings.DEFAULT_MOTHER_LANGUAGE

        prompt = f"""Evaluate a student's answer to a Dutch {ExerciseType(exercise_type).value} exercise at difficulty {difficulty:.1f}/10.

Question: {content}
Student's answer: {user_answer}

Evaluate if the answer is correct. Consider grammatical accuracy, vocabulary usage, and context.
Provide constructive feedback in {feedback_language} that helps the student understand any mistakes.

Respond in JSON format:
{{
    "isCorrect": true or false,
    "feedback": "detailed feedback on the answer"
}}"""

        messages = [
            {"role": "system", "content": "You are a Dutch language teacher evaluating a student's answer. Always respond with valid JSON."},
            {"role": "user", "content": prompt}
        ]

        try:
            response = await self.chat_completion(messages, temperature=0.3)
            parsed = parse_json_response(response)
            is_correct = parsed.get("isCorrect")
            if not isinstance(is_correct, bool):
                raise EvaluationError("AI response has no boolean isCorrect")
            return EvaluationResult.success_result(
                is_correct=is_correct,
                feedback=parsed.get("feedback") or ""
            )
        except Exception as e:
            logger.warning(f"Answer evaluation failed, serving fallback: {e}")
            return EvaluationResult.fallback_result(str(e))

    # ==================== FOLLOW-UP ====================

    async def answer_follow_up(
        self,
        content: str | list[str],
        user_answer: Optional[str],
        feedback: Optional[str | list[str]],
        question: str
    ) -> str:
        """Answer a learner's follow-up question about an exercise."""
        if isinstance(content, list):
            content = "\n".join(content)
        if isinstance(feedback, list):
            feedback = "\n".join(feedback)

        prompt = f"""A student is practicing Dutch and has a question about an exercise.

Exercise: {content}
Student's answer: {user_answer or "(not answered yet)"}
Feedback given: {feedback or "(none)"}

Student's question: {question}

Answer briefly and clearly in English."""

        messages = [
            {"role": "system", "content": "You are a patient Dutch language teacher."},
            {"role": "user", "content": prompt}
        ]

        try:
            answer = await self.chat_completion(messages)
        except Exception as e:
            logger.warning(f"Follow-up answer failed: {e}")
            return FALLBACK_FOLLOW_UP_ANSWER

        if not answer or not answer.strip():
            logger.warning("Follow-up answer was empty")
            return FALLBACK_FOLLOW_UP_ANSWER
        return answer


# Singleton instance
exercise_generator = ExerciseGenerator()
