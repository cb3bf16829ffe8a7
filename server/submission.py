"""
Location submission routes.

This module exposes the endpoint that receives location reports from capture
clients, validates them and acknowledges receipt. Nothing is stored; each
accepted report is written to the log.

Date: 2026-10-19
"""

import logging

from fastapi import APIRouter, Request

from logic.validation import parse_body, validate_submission

_LOGGER = logging.getLogger(__name__)

router = APIRouter()


@router.post("/submit-location")
@router.post("/api/submit-location")
async def submit_location(request: Request):
    """Receive a location report.

    The body is read raw so that malformed JSON produces the same structured
    400 response as a missing identifier or an invalid location.

    Args:
        request: FastAPI request object.

    Returns:
        Dictionary {"ok": True} once the report is accepted.

    Raises:
        LocationError: If the body fails validation (mapped to HTTP 400).
    """
    payload_body = await request.body()
    data = parse_body(payload_body)
    report = validate_submission(data)

    _LOGGER.info(
        "Received location for %s: %s",
        report.identifier,
        report.location(),
    )
    return {"ok": True}


@router.get("/api/health")
def health():
    """Liveness check.

    Returns:
        Dictionary with status "ok".
    """
    return {"status": "ok"}
