"""
FastAPI dependencies for Recommendation Service
"""
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import jwt, JWTError

from .config import settings
from .database import Database, get_db
from .application.services import RecommendationService
from .infrastructure.database.repositories import PostgresRecommendationStore
from .schemas import User

security = HTTPBearer()


def _credentials_error() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security)
) -> User:
    """
    Validate JWT token and return current user
    """
    token = credentials.credentials

    try:
        payload = jwt.decode(
            token,
            settings.JWT_SECRET_KEY,
            algorithms=[settings.JWT_ALGORITHM]
        )
    except JWTError:
        raise _credentials_error()

    subject = payload.get("sub")
    if subject is None:
        raise _credentials_error()

    try:
        user_id = int(subject)
    except (TypeError, ValueError):
        raise _credentials_error()

    return User(id=user_id, username=payload.get("username"), email=payload.get("email"))


def get_recommendation_service(
    database: Database = Depends(get_db),
) -> RecommendationService:
    """Get RecommendationService instance backed by PostgreSQL"""
    return RecommendationService(PostgresRecommendationStore(database))
