import logging
import os
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import __version__
from .database import DATABASE_URL, init_db
from .routes.auth import router as auth_router
from .routes.funding import router as funding_router
from .routes.ideas import router as ideas_router
from .routes.ideathon import router as ideathon_router
from .schemas.base import ErrorResponse
from .services.errors import ServiceError


# Load environment variables from .env file
load_dotenv()

logging.basicConfig(
    level=logging.DEBUG if os.getenv("DEBUG", "false").lower() == "true" else logging.INFO,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):

    # Startup
    init_db()
    print("Starting FundBridge marketplace API")
    print(f"   Database:    {DATABASE_URL.split('://', 1)[0]}")
    print(f"   JWT Secret:  {' Configured' if os.getenv('JWT_SECRET') else ' Not set (using development secret)'}")
    print("   Ready to broker funding requests!")

    yield

    print("Shutting down FundBridge marketplace API")


app = FastAPI(
    title="FundBridge — Startup Funding Marketplace",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)


_cors_origins = os.getenv("CORS_ORIGINS", "http://localhost:3000,http://localhost:5173")

app.add_middleware(
    CORSMiddleware,
    allow_origins=[origin.strip() for origin in _cors_origins.split(",") if origin.strip()],
    allow_credentials=True,
    allow_methods=["*"],  # Allow all HTTP methods
    allow_headers=["*"],  # Allow all headers
)

app.include_router(auth_router)
app.include_router(ideas_router)
app.include_router(funding_router)
app.include_router(ideathon_router)


@app.get(
    "/",
    summary="API Root",
    description="Welcome endpoint with API information",
    tags=["General"]
)
async def root():
    """Root endpoint with API information."""
    return {
        "name": "FundBridge",
        "version": __version__,
        "description": "Funding request negotiation between entrepreneurs and investors",
        "docs": "/docs",
        "endpoints": {
            "auth": "POST /api/auth/signup, POST /api/auth/login",
            "funding": "/api/funding-requests",
            "ideathons": "/api/ideathon-registrations",
        }
    }


@app.get(
    "/health",
    summary="Global Health Check",
    description="Check if the API server is running",
    tags=["General"]
)
async def health():
    """Global health check endpoint."""
    return {
        "status": "healthy",
        "service": "fundbridge",
        "version": __version__
    }


@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError):
    """Expected domain failures: validation, authorization, not found, state."""
    if exc.status_code == 409:
        logger.warning("Conflict on %s %s: %s", request.method, request.url.path, exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(message=exc.message).model_dump(exclude_none=True),
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(message=str(exc.detail)).model_dump(exclude_none=True),
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Malformed bodies and query strings are a 400, not FastAPI's default 422."""
    errors = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        errors.append(f"{location}: {error.get('msg')}" if location else str(error.get("msg")))
    body = ErrorResponse(message=errors[0] if errors else "Invalid request", errors=errors)
    return JSONResponse(status_code=400, content=body.model_dump())


@app.exception_handler(Exception)
async def global_exception_handler(request, exc):
    """Global exception handler for unhandled errors."""
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "message": "Internal server error",
            "detail": str(exc) if os.getenv("DEBUG", "false").lower() == "true" else "An unexpected error occurred"
        }
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "fundbridge.main:app",
        host=os.getenv("HOST", "127.0.0.1"),
        port=int(os.getenv("PORT", "8000")),
        reload=os.getenv("DEBUG", "false").lower() == "true",
    )
