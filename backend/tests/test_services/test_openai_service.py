"""
Tests for the exercise generator (generation, evaluation, follow-up).
"""
import json
import random
import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from desirable.services.openai_service import (
    FALLBACK_CONTENT,
    FALLBACK_EVALUATION_FEEDBACK,
    FALLBACK_FOLLOW_UP_ANSWER,
    ExerciseGenerator,
    GenerationError,
    parse_json_response,
    shuffle_options
)


def completion(text):
    response = MagicMock()
    choice = MagicMock()
    choice.message.content = text
    response.choices = [choice]
    return response


def make_generator(*responses, error=None):
    client = MagicMock()
    if error is not None:
        client.chat.completions.create = AsyncMock(side_effect=error)
    else:
        client.chat.completions.create = AsyncMock(
            side_effect=[completion(text) for text in responses]
        )
    return ExerciseGenerator(client=client), client


class TestParseJsonResponse:
    """Tests for tolerant JSON parsing."""

    def test_plain_json(self):
        assert parse_json_response('{"content": "Hallo"}') == {"content": "Hallo"}

    def test_json_wrapped_in_prose(self):
        text = 'Here is your exercise:\n{"content": "Hallo", "categories": ["x"]}\nEnjoy!'
        assert parse_json_response(text)["content"] == "Hallo"

    def test_unparseable(self):
        with pytest.raises(GenerationError):
            parse_json_response("no json here")

    def test_empty(self):
        with pytest.raises(GenerationError):
            parse_json_response("")

    def test_non_object(self):
        with pytest.raises(GenerationError):
            parse_json_response("[1, 2, 3]")


class TestShuffleOptions:

    def test_correct_index_tracks_first_option(self):
        options = ["fiets", "auto", "boot", "trein"]
        shuffled, index = shuffle_options(options, random.Random(7))

        assert sorted(shuffled) == sorted(options)
        assert shuffled[index] == "fiets"
        assert options == ["fiets", "auto", "boot", "trein"]


class TestGenerate:
    """Tests for exercise generation."""

    @pytest.mark.asyncio
    async def test_generate_success(self):
        generator, client = make_generator(json.dumps({
            "content": "Vertaal: de fiets",
            "translation": "Translate: the bicycle",
            "categories": ["transport"],
            "questionType": "open-ended"
        }))

        result = await generator.generate("vocabulary", 5, 4, preferred_categories=["transport"])

        assert result.is_fallback is False
        assert result.content == "Vertaal: de fiets"
        assert result.categories == ["transport"]
        prompt = client.chat.completions.create.call_args.kwargs["messages"][1]["content"]
        assert "difficulty level 5.0/10" in prompt
        assert "transport" in prompt

    @pytest.mark.asyncio
    async def test_generate_multiple_choice(self):
        generator, _ = make_generator(json.dumps({
            "content": "Wat is 'bicycle'?",
            "options": ["fiets", "auto", "boot", "trein"]
        }))

        result = await generator.generate("vocabulary", 2, 1, question_type="multiple-choice")

        assert result.question_type == "multiple-choice"
        assert len(result.options) == 4
        assert result.options[result.correct_answer_index] == "fiets"

    @pytest.mark.asyncio
    async def test_generate_provider_error_falls_back(self):
        generator, _ = make_generator(error=RuntimeError("rate limited"))

        result = await generator.generate("grammar", 3, 2)

        assert result.is_fallback is True
        assert result.content == FALLBACK_CONTENT
        assert result.error == "rate limited"

    @pytest.mark.asyncio
    async def test_generate_without_content_falls_back(self):
        generator, _ = make_generator(json.dumps({"translation": "nothing"}))

        result = await generator.generate("reading", 3, 2)

        assert result.is_fallback is True

    @pytest.mark.asyncio
    async def test_generate_without_api_key_falls_back(self):
        generator = ExerciseGenerator()
        with patch("desirable.services.openai_service.settings") as mock_settings:
            mock_settings.ai_api_key = None
            result = await generator.generate("vocabulary", 1, 1)

        assert result.is_fallback is True
        assert "not configured" in result.error


class TestEvaluate:
    """Tests for answer evaluation."""

    @pytest.mark.asyncio
    async def test_evaluate_success(self):
        generator, client = make_generator('{"isCorrect": true, "feedback": "Goed!"}')

        result = await generator.evaluate("Vertaal: de fiets", "the bicycle", "vocabulary", 5, "Portuguese")

        assert result.is_correct is True
        assert result.feedback == "Goed!"
        assert result.is_fallback is False
        kwargs = client.chat.completions.create.call_args.kwargs
        assert kwargs["temperature"] == 0.3
        assert "Portuguese" in kwargs["messages"][1]["content"]

    @pytest.mark.asyncio
    async def test_evaluate_non_boolean_verdict_falls_back(self):
        generator, _ = make_generator('{"isCorrect": "yes", "feedback": "Goed!"}')

        result = await generator.evaluate("Hallo", "hello", "vocabulary", 1)

        assert result.is_fallback is True
        assert result.is_correct is False
        assert result.feedback == FALLBACK_EVALUATION_FEEDBACK

    @pytest.mark.asyncio
    async def test_evaluate_provider_error_falls_back(self):
        generator, _ = make_generator(error=TimeoutError("timeout"))

        result = await generator.evaluate(["Regel 1", "Regel 2"], "answer", "reading", 4)

        assert result.is_fallback is True
        assert result.is_correct is False


class TestFollowUp:

    @pytest.mark.asyncio
    async def test_answer_follow_up(self):
        generator, _ = make_generator("'Fiets' is a de-word.")

        answer = await generator.answer_follow_up("Vertaal: de fiets", "the bike", "Goed!", "Is it de or het?")

        assert answer == "'Fiets' is a de-word."

    @pytest.mark.asyncio
    async def test_answer_follow_up_failure(self):
        generator, _ = make_generator(error=RuntimeError("down"))

        answer = await generator.answer_follow_up("Hallo", None, None, "Why?")

        assert answer == FALLBACK_FOLLOW_UP_ANSWER

    @pytest.mark.asyncio
    @pytest.mark.parametrize("content", [None, "", "   "])
    async def test_empty_follow_up_answer_uses_fallback(self, content):
        generator, _ = make_generator(content)

        answer = await generator.answer_follow_up("Hallo", None, None, "Why?")

        assert answer == FALLBACK_FOLLOW_UP_ANSWER
