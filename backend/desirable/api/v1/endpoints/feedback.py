"""
Feedback API Endpoints
Question ratings and general app feedback.
"""
import logging
from datetime import datetime, timedelta
from uuid import uuid4
from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import JSONResponse

from desirable.config import settings
from desirable.core.dependencies import get_current_user
from desirable.models.feedback import (
    DeviceInfo,
    Feedback,
    FeedbackCategory,
    FeedbackType,
    GeneralFeedback,
    QuestionFeedback
)
from desirable.models.user import User
from desirable.schemas.feedback import GeneralFeedbackRequest, QuestionFeedbackRequest
from desirable.services.cosmos_db_service import cosmos_db_service


logger = logging.getLogger(__name__)

router = APIRouter()


def _client_ip(http_request: Request) -> str | None:
    return http_request.client.host if http_request.client else None


@router.post("/question")
async def submit_question_feedback(
    request: QuestionFeedbackRequest,
    http_request: Request,
    current_user: User = Depends(get_current_user)
):
    """
    Rate a practice question. One rating per user and practice: a repeat
    rating updates the existing record (200) instead of creating one (201).
    """
    try:
        existing = await cosmos_db_service.find_question_feedback(current_user.id, request.practice_id)
        if existing:
            existing["questionFeedback"]["rating"] = request.rating.value
            updated = await cosmos_db_service.update_feedback(existing)
            return JSONResponse(status_code=status.HTTP_200_OK, content={
                "success": True,
                "message": "Feedback updated successfully",
                "data": Feedback(**updated).to_document()
            })

        feedback = Feedback(
            id=uuid4().hex,
            user_id=current_user.id,
            feedback_type=FeedbackType.QUESTION_RATING,
            question_feedback=QuestionFeedback(
                practice_id=request.practice_id,
                rating=request.rating,
                content=request.content,
                difficulty=request.difficulty
            ),
            ip_address=_client_ip(http_request),
            device_info=DeviceInfo(platform=http_request.headers.get("user-agent", "unknown"))
        )
        created = await cosmos_db_service.create_feedback(feedback.to_document())
        return JSONResponse(status_code=status.HTTP_201_CREATED, content={
            "success": True,
            "message": "Feedback submitted successfully",
            "data": Feedback(**created).to_document()
        })

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error submitting question feedback: {e}")
        raise HTTPException(
            status_code=500,
            detail=f"Error submitting feedback: {str(e)}"
        )


@router.post("/general", status_code=status.HTTP_201_CREATED)
async def submit_general_feedback(
    request: GeneralFeedbackRequest,
    http_request: Request,
    current_user: User = Depends(get_current_user)
):
    """Submit general feedback, limited to FEEDBACK_DAILY_LIMIT per 24 hours."""
    try:
        since = datetime.utcnow() - timedelta(hours=24)
        recent = await cosmos_db_service.count_recent_general_feedback(current_user.id, since)
        if recent >= settings.FEEDBACK_DAILY_LIMIT:
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail="Too many feedback submissions in 24 hours. Please try again later."
            )

        feedback = Feedback(
            id=uuid4().hex,
            user_id=current_user.id,
            feedback_type=FeedbackType.GENERAL_FEEDBACK,
            general_feedback=GeneralFeedback(
                title=request.title or "Feedback",
                message=request.message,
                category=request.category or FeedbackCategory.OTHER
            ),
            ip_address=_client_ip(http_request),
            device_info=DeviceInfo(
                platform=http_request.headers.get("user-agent", "unknown"),
                version=http_request.headers.get("app-version", "unknown")
            )
        )
        created = await cosmos_db_service.create_feedback(feedback.to_document())
        return {
            "success": True,
            "message": "Thank you for your feedback!",
            "data": {"id": created["id"]}
        }

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error submitting general feedback: {e}")
        raise HTTPException(
            status_code=500,
            detail=f"Error submitting feedback: {str(e)}"
        )


@router.get("/history")
async def get_feedback_history(current_user: User = Depends(get_current_user)):
    """Get the user's latest feedback, newest first."""
    try:
        documents = await cosmos_db_service.get_feedback_history(
            current_user.id, settings.FEEDBACK_HISTORY_LIMIT
        )
        return {
            "success": True,
            "data": [Feedback(**document).to_document() for document in documents]
        }

    except Exception as e:
        logger.error(f"Error fetching feedback history: {e}")
        raise HTTPException(
            status_code=500,
            detail=f"Error fetching feedback history: {str(e)}"
        )
