"""
shopshap/api/verification.py

Purpose: Phone verification endpoints

- POST /verification/send    -> send a WhatsApp code
- POST /verification/verify  -> check a code, link the verified profile
- OPTIONS on both            -> permissive CORS preflight
- GET /verification/debug    -> in-memory state, development only

Handlers never let an exception escape: anything unexpected becomes a
generic 500 with success=false.
"""

from typing import Optional
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse, Response

from shopshap.core.config import settings
from shopshap.core.exceptions import ResourceNotFoundError
from shopshap.core.logging import get_logger, mask_phone
from shopshap.schemas.verification import SendCodeRequest, VerifyCodeRequest
from shopshap.services.user_service import upsert_verified_profile
from shopshap.services.verification_service import VerificationService, get_verification_service
from utils.time_utils import utc_now, format_timestamp
from utils.constants import (
    PHONE_REQUIRED_MESSAGE,
    PHONE_AND_CODE_REQUIRED_MESSAGE,
    INTERNAL_ERROR_MESSAGE,
    INTEGRATION_WARNING_MESSAGE,
    DEBUG_UNAVAILABLE_MESSAGE,
)

logger = get_logger(__name__)
router = APIRouter(prefix="/verification")

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "POST, GET, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type",
}


def _failure(status_code: int, message: str, reason: Optional[str] = None) -> JSONResponse:
    content = {"success": False, "message": message}
    if reason:
        content["reason"] = reason
    return JSONResponse(status_code=status_code, content=content)


@router.post("/send")
async def send_code(
    payload: SendCodeRequest,
    service: VerificationService = Depends(get_verification_service)
):
    """
    Sends a verification code to the given WhatsApp number.

    Body: {"phoneNumber": "+221701234567"}

    Returns:
        200 {success, message, sid, country, formatted_number}
        400 {success: false, message, reason}
    """
    try:
        if not payload.phone_number:
            return _failure(400, PHONE_REQUIRED_MESSAGE, "VALIDATION_ERROR")

        result = await service.send_code(payload.phone_number)

        if settings.is_development:
            logger.debug(f"WhatsApp send result: success={result.success} reason={result.reason}")

        return JSONResponse(
            status_code=200 if result.success else 400,
            content=result.model_dump(mode="json", exclude_none=True)
        )

    except Exception as e:
        logger.error(f"WhatsApp send error: {e}", exc_info=True)
        return _failure(500, INTERNAL_ERROR_MESSAGE)


@router.post("/verify")
async def verify_code(
    payload: VerifyCodeRequest,
    service: VerificationService = Depends(get_verification_service)
):
    """
    Verifies a code and links the phone number to a profile.

    Body: {"phoneNumber": "+221701234567", "code": "123456"}

    Returns:
        200 {success, message, user_data: {phone, country, verified_at}, whatsapp_verified}
        400 {success: false, message, reason}

    A datastore failure after a successful check keeps the 200 and adds
    integration_warning.
    """
    try:
        if not payload.phone_number or not payload.code:
            return _failure(400, PHONE_AND_CODE_REQUIRED_MESSAGE, "VALIDATION_ERROR")

        result = await service.verify_code(payload.phone_number, payload.code)

        if not result.success:
            return JSONResponse(
                status_code=400,
                content=result.model_dump(mode="json", exclude_none=True)
            )

        content = result.model_dump(mode="json", exclude_none=True)
        content["whatsapp_verified"] = True

        try:
            await upsert_verified_profile(result.user_data)
        except Exception as e:
            logger.error(
                f"Profile linking failed for {mask_phone(result.user_data.phone)}: {e}",
                exc_info=True
            )
            content["integration_warning"] = INTEGRATION_WARNING_MESSAGE

        return JSONResponse(status_code=200, content=content)

    except Exception as e:
        logger.error(f"WhatsApp verify error: {e}", exc_info=True)
        return _failure(500, INTERNAL_ERROR_MESSAGE)


@router.options("/send")
@router.options("/verify")
async def preflight():
    return Response(status_code=200, headers=CORS_HEADERS)


@router.get("/debug")
async def debug_info(service: VerificationService = Depends(get_verification_service)):
    """
    Dumps stored codes and rate limits. Development only, 404 elsewhere.
    """
    if not settings.is_development:
        raise ResourceNotFoundError(DEBUG_UNAVAILABLE_MESSAGE)

    return {
        "debug": service.debug_snapshot(),
        "timestamp": format_timestamp(utc_now()),
        "environment": settings.ENVIRONMENT,
    }
