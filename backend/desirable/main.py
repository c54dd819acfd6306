"""
Main FastAPI application entry point.
Initializes the app, middleware, and routes.
"""
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import logging

from desirable.config import settings
from desirable.services.cosmos_db_service import cosmos_db_service

# Configure logging
logging.basicConfig(
    level=settings.LOG_LEVEL,
    format=settings.LOG_FORMAT
)
logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Adaptive Dutch practice API with desirable difficulty",
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url="/redoc" if settings.DEBUG else None
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Report malformed request bodies as 400."""
    return JSONResponse(
        status_code=400,
        content={
            "detail": "Invalid request",
            "errors": [
                {"loc": list(error.get("loc", [])), "msg": error.get("msg", "")}
                for error in exc.errors()
            ]
        }
    )


@app.on_event("startup")
async def startup_event():
    """Run on application startup."""
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")
    logger.info(f"Environment: {settings.ENVIRONMENT}")
    logger.info(f"AI provider: {settings.AI_PROVIDER} (key {'present' if settings.ai_api_key else 'missing'})")

    if settings.COSMOS_DB_INITIALIZE_ON_STARTUP:
        await cosmos_db_service.initialize()

    logger.info("Application started successfully")


@app.on_event("shutdown")
async def shutdown_event():
    """Run on application shutdown."""
    logger.info("Application shutdown complete")


@app.get("/")
async def root():
    """Health check endpoint"""
    return JSONResponse(content={
        "app": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "status": "healthy",
        "environment": settings.ENVIRONMENT
    })


@app.get("/health")
async def health_check():
    """Report service configuration status."""
    return JSONResponse(content={
        "status": "healthy",
        "services": {
            "api": "up",
            "ai_provider": "configured" if settings.ai_api_key else "fallback",
            "database": "configured" if settings.database_url else "missing"
        }
    })


# Include routers
from desirable.api.v1.endpoints import auth, practice, feedback
app.include_router(auth.router, prefix=f"{settings.API_PREFIX}/auth", tags=["auth"])
app.include_router(practice.router, prefix=f"{settings.API_PREFIX}/practice", tags=["practice"])
app.include_router(feedback.router, prefix=f"{settings.API_PREFIX}/feedback", tags=["feedback"])


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "desirable.main:app",
        host="0.0.0.0",
        port=settings.PORT,
        reload=settings.DEBUG
    )
