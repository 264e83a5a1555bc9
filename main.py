import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from config import settings
from exceptions import (
    ZiweiAPIException,
    ChartCalculationError,
    InvalidDateTimeError,
    InvalidPalaceError,
    AlmanacError,
)
from routers import router

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger("ziwei_api")

app = FastAPI(
    title="Ziwei Doushu API",
    description="Ziwei Doushu chart and Chinese almanac calculation API",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc"
)

# CORS Middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _error_response(status_code: int, error: str, message: str, detail=None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "error": error,
            "message": message,
            "detail": detail
        }
    )


# Exception Handlers
@app.exception_handler(InvalidDateTimeError)
async def invalid_datetime_handler(request: Request, exc: InvalidDateTimeError):
    """Handle invalid birth date/time errors."""
    return _error_response(422, type(exc).__name__, str(exc))


@app.exception_handler(InvalidPalaceError)
async def invalid_palace_handler(request: Request, exc: InvalidPalaceError):
    """Handle unknown palace names."""
    return _error_response(422, "InvalidPalaceError", str(exc))


@app.exception_handler(ChartCalculationError)
async def chart_calculation_error_handler(request: Request, exc: ChartCalculationError):
    """Handle chart calculation and star placement errors."""
    return _error_response(500, type(exc).__name__, str(exc))


@app.exception_handler(AlmanacError)
async def almanac_error_handler(request: Request, exc: AlmanacError):
    """Handle almanac lookup errors."""
    return _error_response(500, "AlmanacError", str(exc))


@app.exception_handler(ZiweiAPIException)
async def api_exception_handler(request: Request, exc: ZiweiAPIException):
    """Handle any other API error."""
    return _error_response(500, type(exc).__name__, str(exc))


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle Pydantic validation errors."""
    return _error_response(422, "ValidationError", "Request validation failed",
                           jsonable_encoder(exc.errors()))


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle all other unexpected exceptions."""
    logger.exception("Unhandled error on %s", request.url.path)
    return _error_response(500, "InternalServerError", "An unexpected error occurred")


# Include API router
app.include_router(router, prefix="/api/v1", tags=["API"])


# Root endpoints
@app.get("/")
async def root():
    """Root endpoint with API information."""
    return {
        "message": "Ziwei Doushu API",
        "version": "1.0.0",
        "docs": "/docs",
        "redoc": "/redoc"
    }


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "ok"}
