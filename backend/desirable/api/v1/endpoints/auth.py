"""
Auth API Endpoints
Invitation-gated registration, login and current user.
"""
import logging
from uuid import uuid4
from fastapi import APIRouter, Depends, HTTPException, status

from desirable.config import settings
from desirable.core.dependencies import get_current_user
from desirable.core.security import create_access_token, get_password_hash, verify_password
from desirable.models.invitation import normalize_invitation_code
from desirable.models.progress import UserProgress
from desirable.models.user import AuthResponse, User, UserCreate, UserLogin, UserResponse
from desirable.services.cosmos_db_service import ConcurrencyConflictError, cosmos_db_service


logger = logging.getLogger(__name__)

router = APIRouter()

INVALID_CODE_MESSAGE = "Invalid or already used invitation code"


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def register(request: UserCreate):
    """
    Register a new user with a single-use invitation code.

    Creates the user and an initial progress record with every skill
    level at 1, and returns a bearer token.
    """
    try:
        email = request.email.lower()
        if await cosmos_db_service.get_user_by_email(email):
            raise HTTPException(status_code=400, detail="User with this email already exists")

        code = normalize_invitation_code(request.invitation_code)
        code_document = await cosmos_db_service.get_invitation_code(code)
        if not code_document or code_document.get("isUsed"):
            raise HTTPException(status_code=400, detail=INVALID_CODE_MESSAGE)

        user = User(
            id=uuid4().hex,
            email=email,
            name=request.name.strip(),
            password_hash=get_password_hash(request.password),
            mother_language=request.mother_language or settings.DEFAULT_MOTHER_LANGUAGE,
            learning_subject=settings.DEFAULT_LEARNING_SUBJECT
        )

        # Consume the code first so two registrations cannot share it
        try:
            await cosmos_db_service.mark_invitation_code_used(code_document, user.id)
        except ConcurrencyConflictError:
            raise HTTPException(status_code=400, detail=INVALID_CODE_MESSAGE)

        await cosmos_db_service.create_user(user.to_document())
        progress = UserProgress.initial(user.id, user.learning_subject)
        await cosmos_db_service.create_user_progress(progress.to_document())

        logger.info(f"Registered user {user.id}")
        return AuthResponse(
            id=user.id,
            name=user.name,
            email=user.email,
            token=create_access_token(user.id)
        )

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Registration error: {e}")
        raise HTTPException(
            status_code=500,
            detail=f"Server error during registration: {str(e)}"
        )


@router.post("/login", response_model=AuthResponse)
async def login(request: UserLogin):
    """Exchange email and password for a bearer token."""
    try:
        user_data = await cosmos_db_service.get_user_by_email(request.email.lower())
        if not user_data:
            raise HTTPException(status_code=401, detail="Invalid email or password")

        user = User(**user_data)
        if not verify_password(request.password, user.password_hash):
            raise HTTPException(status_code=401, detail="Invalid email or password")

        return AuthResponse(
            id=user.id,
            name=user.name,
            email=user.email,
            token=create_access_token(user.id)
        )

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Login error: {e}")
        raise HTTPException(
            status_code=500,
            detail=f"Server error during login: {str(e)}"
        )


@router.get("/me", response_model=UserResponse)
async def get_me(current_user: User = Depends(get_current_user)):
    """Get the authenticated user (without sensitive data)."""
    return UserResponse.from_user(current_user)
