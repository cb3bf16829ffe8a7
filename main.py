"""
Crate Locator FastAPI Application

Main entry point for the location submission server. Serves the endpoint
capture clients post their coordinates to.

Date: 2026-10-19
"""

import logging

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from logic.config import configure_logging, get_settings
from logic.errors import LocationError
from server.submission import router as submission_router

_LOGGER = logging.getLogger(__name__)

settings = get_settings()

app = FastAPI(title="Crate Locator")

app.add_middleware(
    CORSMiddleware,
    allow_origins=list(settings.cors_origins),
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type"],
)

# Include all routers
app.include_router(submission_router)

# ============================================================
# Error Handling
# ============================================================


@app.exception_handler(LocationError)
async def location_error_handler(request: Request, exc: LocationError):
    """Convert validation errors into {"error": message} responses.

    Args:
        request: FastAPI request object.
        exc: The raised LocationError.

    Returns:
        JSONResponse with the error's status code.
    """
    _LOGGER.info("Rejected %s %s: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


def run():
    """Start the server with uvicorn using the configured host and port."""
    configure_logging(settings.log_level)
    uvicorn.run(app, host=settings.host, port=settings.port)


if __name__ == "__main__":
    run()
