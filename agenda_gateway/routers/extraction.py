"""
Agenda image processing endpoint.

Provides the API for extracting attending patients from an uploaded schedule image.
"""
import asyncio
import contextlib
from typing import Awaitable, List, TypeVar

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, Response
from loguru import logger

from agenda_gateway.models import (
    ErrorResponse,
    ImageSubmission,
    ParseErrorResponse,
    PatientRecord,
)
from agenda_gateway.services.extraction import ExtractionGateway

router = APIRouter(prefix="/api", tags=["extraction"])

T = TypeVar("T")

# Seconds between client-disconnect checks while the upstream call runs
DISCONNECT_POLL_INTERVAL = 0.5
CLIENT_CLOSED_REQUEST = 499


class ClientDisconnected(Exception):
    pass


def get_gateway(request: Request) -> ExtractionGateway:
    """Return the gateway built at application startup."""
    return request.app.state.gateway


async def run_until_disconnect(request: Request, awaitable: Awaitable[T]) -> T:
    """
    Await ``awaitable``, cancelling it if the client disconnects first.

    Raises:
        ClientDisconnected: If the client went away before completion
    """
    task = asyncio.ensure_future(awaitable)
    try:
        while True:
            done, _ = await asyncio.wait({task}, timeout=DISCONNECT_POLL_INTERVAL)
            if done:
                return task.result()
            if await request.is_disconnected():
                task.cancel()
                # Let the upstream call unwind before answering
                with contextlib.suppress(asyncio.CancelledError):
                    await task
                raise ClientDisconnected()
    finally:
        if not task.done():
            task.cancel()


@router.post(
    "/process-image",
    response_model=List[PatientRecord],
    responses={
        400: {"model": ParseErrorResponse, "description": "Bad input or unparseable model output"},
        413: {"model": ErrorResponse, "description": "Request body too large"},
        500: {"model": ErrorResponse, "description": "Configuration or upstream failure"},
    },
)
async def process_image(
    submission: ImageSubmission,
    request: Request,
    gateway: ExtractionGateway = Depends(get_gateway),
) -> Response:
    """
    Extract the patients marked as arrived from an agenda image.

    Args:
        submission: ImageSubmission with base64 image data and MIME type

    Returns:
        JSON array of patient records

    Errors are raised as GatewayError subclasses and rendered by the
    application's exception handler.
    """
    try:
        records = await run_until_disconnect(request, gateway.extract(submission))
    except ClientDisconnected:
        logger.warning("Client disconnected, upstream call cancelled")
        return Response(status_code=CLIENT_CLOSED_REQUEST)

    # Records are returned as produced; response_model only documents the shape
    return JSONResponse(content=records)
