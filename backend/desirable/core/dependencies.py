"""
FastAPI Dependencies
Dependency injection for authentication and authorization.
"""
import logging
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from desirable.core.security import get_user_id_from_token
from desirable.services.cosmos_db_service import cosmos_db_service
from desirable.models.user import User


logger = logging.getLogger(__name__)

# HTTP Bearer token scheme
security = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security)
) -> User:
    """
    Get current user from JWT token (required).

    Raises 401 if token is missing or invalid, or the user no longer exists.
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Not authorized, token failed",
        headers={"WWW-Authenticate": "Bearer"},
    )

    if not credentials:
        raise credentials_exception

    user_id = get_user_id_from_token(credentials.credentials)
    if not user_id:
        raise credentials_exception

    user_data = await cosmos_db_service.get_user(user_id)
    if not user_data:
        logger.warning(f"Token for unknown user: {user_id}")
        raise credentials_exception

    return User(**user_data)


def ensure_same_user(current_user: User, user_id: str) -> None:
    """Raise 403 when acting on another user's data."""
    if current_user.id != user_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not allowed to access another user's data"
        )
