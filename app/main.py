"""Main FastAPI application."""

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app import __version__
from app.api.endpoints import router
from app.config import get_settings
from app.utils.logging import LogConfig, get_logger, setup_logging

settings = get_settings()
setup_logging(LogConfig(level=settings.log_level))

logger = get_logger(__name__)

# Create FastAPI application
app = FastAPI(
    title="SPARQ Recruiting Agent",
    description=(
        "A conversational recruiting agent for high school athletes that streams "
        "its replies and calls recruiting tools on the athlete's behalf."
    ),
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_tags=[
        {
            "name": "Conversation",
            "description": "Streaming chat with the recruiting agent over server-sent events.",
        },
        {
            "name": "Sessions",
            "description": "Open and close the sessions that identify a caller.",
        },
        {
            "name": "Athletes",
            "description": "Athlete profiles, name search and recommended opportunities.",
        },
        {
            "name": "Health",
            "description": "Service health monitoring and status checks.",
        },
    ],
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Report malformed request bodies as 400 rather than 422."""
    logger.warning(f"Invalid request to {request.url.path}: {exc.errors()}")
    return JSONResponse(
        status_code=400,
        content={"detail": "Invalid request", "errors": jsonable_encoder(exc.errors())},
    )


# Include routers
app.include_router(router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("app.main:app", host="0.0.0.0", port=8000, reload=True, log_level=settings.log_level.lower())
