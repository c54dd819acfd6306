"""
Practice API Endpoints
Exercise generation, answer submission, history and adjustment mode.
"""
import logging
import math
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import JSONResponse

from desirable.agents.orchestrator import run_orchestrator
from desirable.agents.progress_agent import progress_agent
from desirable.core.dependencies import ensure_same_user, get_current_user
from desirable.models.practice import Practice
from desirable.models.progress import UserProgress
from desirable.models.user import User
from desirable.schemas.practice import (
    EnterAdjustmentModeRequest,
    FollowUpQuestionRequest,
    GeneratePracticeRequest,
    PreferencesRequest,
    SubmitAnswerRequest
)
from desirable.services.cosmos_db_service import cosmos_db_service
from desirable.services.openai_service import exercise_generator


logger = logging.getLogger(__name__)

router = APIRouter()


def _raise_for_state(state: dict) -> None:
    """Turn an agent failure into the matching HTTP error."""
    if state.get("has_error"):
        raise HTTPException(
            status_code=state.get("error_status") or status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=state.get("error_message") or "Request failed"
        )


# ==================== GENERATION ====================

@router.post("/generate", status_code=status.HTTP_201_CREATED)
async def generate_practice(
    request: GeneratePracticeRequest,
    current_user: User = Depends(get_current_user)
):
    """
    Generate practice exercises for the authenticated user.

    Unset parameters fall back to the user's stored progress. While the
    user is in adjustment mode only a single item is generated.
    """
    try:
        if request.user_id:
            ensure_same_user(current_user, request.user_id)

        state = await run_orchestrator(
            user_id=current_user.id,
            request_type="generate_practice",
            input_data=request.to_input()
        )
        _raise_for_state(state)
        return JSONResponse(status_code=status.HTTP_201_CREATED, content=state["response"])

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error generating practice: {e}")
        raise HTTPException(
            status_code=500,
            detail=f"Failed to generate practice: {str(e)}"
        )


# ==================== SUBMISSION ====================

@router.post("/submit")
async def submit_answer(
    request: SubmitAnswerRequest,
    current_user: User = Depends(get_current_user)
):
    """
    Submit an answer, evaluate it and update progress.

    A practice accepts one answer; a second submission returns 409.
    """
    try:
        state = await run_orchestrator(
            user_id=current_user.id,
            request_type="submit_answer",
            input_data={
                "practice_id": request.practice_id,
                "answer": request.resolved_answer
            }
        )
        _raise_for_state(state)
        return state["response"]

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error submitting answer: {e}")
        raise HTTPException(
            status_code=500,
            detail=f"Failed to submit answer: {str(e)}"
        )


@router.post("/enter-adjustment-mode")
async def enter_adjustment_mode(
    request: Optional[EnterAdjustmentModeRequest] = None,
    current_user: User = Depends(get_current_user)
):
    """Start a calibration phase of single-item practices. Idempotent."""
    try:
        input_data = {}
        if request and request.learning_subject:
            input_data["learning_subject"] = request.learning_subject

        state = await run_orchestrator(
            user_id=current_user.id,
            request_type="enter_adjustment_mode",
            input_data=input_data
        )
        _raise_for_state(state)
        return state["response"]

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error entering adjustment mode: {e}")
        raise HTTPException(
            status_code=500,
            detail=f"Failed to enter adjustment mode: {str(e)}"
        )


# ==================== HISTORY & PROGRESS ====================

@router.get("/history/{user_id}")
async def get_practice_history(
    user_id: str,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    current_user: User = Depends(get_current_user)
):
    """Get a user's practices, newest first, with pagination."""
    ensure_same_user(current_user, user_id)
    try:
        documents = await cosmos_db_service.get_practice_history(user_id, page, limit)
        total = await cosmos_db_service.count_practices(user_id)

        return {
            "practices": [Practice(**document).to_document() for document in documents],
            "pagination": {
                "total": total,
                "page": page,
                "pages": math.ceil(total / limit)
            }
        }

    except Exception as e:
        logger.error(f"Error fetching practice history: {e}")
        raise HTTPException(
            status_code=500,
            detail=f"Failed to fetch practice history: {str(e)}"
        )


@router.get("/progress")
async def get_progress(
    learning_subject: Optional[str] = Query(default=None, alias="learningSubject"),
    current_user: User = Depends(get_current_user)
):
    """Get the authenticated user's progress record."""
    subject = learning_subject or current_user.learning_subject
    try:
        progress_data = await cosmos_db_service.get_user_progress(current_user.id, subject)
        if not progress_data:
            raise HTTPException(status_code=404, detail="User progress not found")
        return {"success": True, "data": UserProgress(**progress_data).to_document()}

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error getting progress: {e}")
        raise HTTPException(
            status_code=500,
            detail=f"Failed to get progress: {str(e)}"
        )


@router.put("/preferences")
async def update_preferences(
    request: PreferencesRequest,
    current_user: User = Depends(get_current_user)
):
    """Save onboarding preferences and mark onboarding complete."""
    subject = request.learning_subject or current_user.learning_subject

    def apply(progress: UserProgress):
        progress.preferred_categories = request.preferred_categories
        progress.challenge_areas = request.challenge_areas
        return True, None

    try:
        progress, _ = await progress_agent.update_with_retry(current_user.id, subject, apply)
        if progress is None:
            raise HTTPException(status_code=404, detail="User progress not found")

        if not current_user.has_completed_onboarding:
            await cosmos_db_service.update_user(current_user.id, {"hasCompletedOnboarding": True})

        return {"success": True, "data": progress.to_document()}

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error updating preferences: {e}")
        raise HTTPException(
            status_code=500,
            detail=f"Failed to update preferences: {str(e)}"
        )


# ==================== FOLLOW-UP ====================

@router.post("/question")
async def ask_follow_up_question(
    request: FollowUpQuestionRequest,
    current_user: User = Depends(get_current_user)
):
    """Answer a follow-up question about one of the user's practices."""
    try:
        practice_data = await cosmos_db_service.get_practice(request.practice_id)
        if not practice_data:
            raise HTTPException(status_code=404, detail="Practice not found")
        practice = Practice(**practice_data)
        ensure_same_user(current_user, practice.user_id)

        answer = await exercise_generator.answer_follow_up(
            practice.content,
            practice.user_answer,
            practice.feedback,
            request.question
        )
        return {"success": True, "answer": answer}

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error answering follow-up question: {e}")
        raise HTTPException(
            status_code=500,
            detail=f"Failed to answer question: {str(e)}"
        )
