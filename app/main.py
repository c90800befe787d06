"""
Student Collab Hub - Main Application

FastAPI backend with:
- MongoDB for users, posts and comments
- JWT authentication
- Cloudinary for image uploads

Run: uvicorn app.main:app --reload
"""

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.api.routes import api_router
from app.db.mongodb import init_mongo_indexes, test_mongo_connection
from app.core.config import get_settings
from app.core.exceptions import CollabHubError
from app.core.logging import setup_logging, get_logger

settings = get_settings()
setup_logging(settings.log_level)
logger = get_logger(__name__)

# Create FastAPI app
app = FastAPI(
    title="Student Collab Hub",
    description="""
    A social platform for students to share study notes and job posts.

    ## Features
    - **Authentication**: JWT-based register/login
    - **Users**: Profiles, avatars, follow/unfollow, discovery
    - **Posts**: Notes and job listings with image attachments, likes, views
    - **Comments**: Comments with one level of replies, likes

    ## Errors
    Every error body is `{"message": ...}`; validation errors add `errors`.
    """,
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc"
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API routes
app.include_router(api_router, prefix="/api")


# ============================================================
# ERROR HANDLERS
# ============================================================

def format_validation_errors(errors) -> list:
    """[{field, message}, ...] from pydantic error dicts."""
    formatted = []
    for error in errors:
        loc = [str(part) for part in error.get("loc", ())]
        if loc and loc[0] in ("body", "query", "path", "header", "form"):
            loc = loc[1:]
        message = str(error.get("msg", "Invalid value"))
        if message.startswith("Value error, "):
            message = message[len("Value error, "):]
        formatted.append({"field": ".".join(loc), "message": message})
    return formatted


@app.exception_handler(CollabHubError)
async def collab_hub_error_handler(request: Request, exc: CollabHubError):
    return JSONResponse(status_code=exc.status_code, content={"message": exc.message})


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(status_code=exc.status_code, content={"message": str(exc.detail)}, headers=exc.headers)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=400,
        content={"message": "Validation failed", "errors": format_validation_errors(exc.errors())}
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception(f"{request.method} {request.url.path} failed: {exc}")
    return JSONResponse(status_code=500, content={"message": "Server error"})


# Startup event
@app.on_event("startup")
async def startup_event():
    """Initialize MongoDB indexes on startup."""
    try:
        init_mongo_indexes()
    except Exception as e:
        logger.warning(f"MongoDB index initialization failed: {e}")


@app.get("/api/health", tags=["Health"])
def health_check():
    """Health check."""
    return {
        "status": "OK",
        "message": "Server is running",
        "mongodb": "connected" if test_mongo_connection() else "disconnected"
    }
