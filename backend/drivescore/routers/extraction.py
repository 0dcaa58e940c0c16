import json

import anthropic
from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import JSONResponse
from loguru import logger

from drivescore.config import Settings, get_settings
from drivescore.models.extraction import ErrorBody
from drivescore.services.extraction import (
    ExtractionServiceError,
    InvalidRequestError,
    create_client,
    ensure_configured,
    extract_from_image,
    parse_extraction_request,
)

router = APIRouter(tags=["extraction"])

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type",
    "Content-Type": "application/json",
}


def error_response(status_code: int, message: str) -> JSONResponse:
    body = ErrorBody(error=message)
    return JSONResponse(status_code=status_code, content=body.model_dump(), headers=CORS_HEADERS)


def get_client_factory():
    """Dependency returning the callable that builds a Claude client from settings."""
    return create_client


@router.options("/extract")
async def extract_preflight():
    """Answer CORS preflight with an empty body."""
    return Response(status_code=200, content="", headers=CORS_HEADERS)


@router.post(
    "/extract",
    responses={
        400: {"model": ErrorBody},
        405: {"model": ErrorBody},
        500: {"model": ErrorBody},
    },
)
async def extract_form(
    request: Request,
    settings: Settings = Depends(get_settings),
    client_factory=Depends(get_client_factory),
):
    """Transcribe the handwritten fields of an uploaded voter registration form."""
    try:
        try:
            body = await request.json()
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise InvalidRequestError("Request body must be valid JSON") from e

        extraction_request = parse_extraction_request(body)
        ensure_configured(settings)

        client: anthropic.AsyncAnthropic = client_factory(settings)
        record = await extract_from_image(extraction_request, settings, client)
    except ExtractionServiceError as e:
        logger.warning("Extraction request failed ({}, {})", e.status_code, e.kind)
        return error_response(e.status_code, e.message)
    except Exception as e:
        logger.exception("Extraction failed unexpectedly")
        return error_response(500, str(e))

    return JSONResponse(status_code=200, content=record, headers=CORS_HEADERS)
