"""
FastAPI application for Recommendation Service
"""
from fastapi import FastAPI, Depends, HTTPException, Request, status, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
import logging

from .config import settings
from .database import db
from .dependencies import get_current_user, get_recommendation_service
from .application.services import RecommendationService
from .domain.models import RecommendationKind
from .exceptions import RecommendationError
from .schemas import User, RecommendationResponse, HealthResponse

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager"""
    # Startup
    logger.info("Starting Recommendation Service...")
    await db.connect()
    logger.info(f"Recommendation Service started successfully on port {settings.PORT}")

    yield

    # Shutdown
    logger.info("Shutting down Recommendation Service...")
    await db.disconnect()
    logger.info("Recommendation Service shut down successfully")


# Create FastAPI application
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Instagram Recommendation Service - explainable ranking of posts, hashtags and accounts",
    lifespan=lifespan,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(RecommendationError)
async def recommendation_exception_handler(request: Request, exc: RecommendationError):
    logger.error(f"{exc.__class__.__name__} on {request.url.path}: {exc.message}")
    return JSONResponse(
        status_code=exc.status,
        content={"code": exc.code, "message": exc.message},
    )


# Health check endpoint
@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check():
    """Health check endpoint"""
    return HealthResponse(
        status="healthy",
        service=settings.APP_NAME,
        version=settings.APP_VERSION,
    )


@app.get(
    "/api/v1/recommendations",
    response_model=RecommendationResponse,
    tags=["Recommendations"],
    summary="Get personalized recommendations",
)
async def get_recommendations(
    kind: str = Query("posts", description="posts, hashtags or accounts (alias: users)"),
    limit: int = Query(settings.DEFAULT_LIMIT, ge=1, description="Number of items (clamped to the maximum)"),
    current_user: User = Depends(get_current_user),
    service: RecommendationService = Depends(get_recommendation_service),
):
    """
    Get recommendations for the current user

    - **posts**: recent posts scored by follows, liked hashtags, media taste, recency and engagement
    - **hashtags**: hashtags trending over the last week, boosted when you liked them before
    - **accounts**: accounts liking the same hashtags as you, or the most followed accounts
    """
    try:
        recommendation_kind = RecommendationKind.parse(kind)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid kind '{kind}'. Use posts, hashtags or accounts",
        )

    result = await service.recommend(current_user.id, recommendation_kind, limit)
    return RecommendationResponse.from_result(result)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "recommendation_service.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
    )
