"""
shopshap/schemas/verification.py

Purpose: Phone verification request/response schemas

- Request bodies for /verification/send and /verification/verify
- SendResult / VerifyResult, the uniform outcomes of the verification service
"""

from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field
from typing import Optional

from shopshap.schemas.response import ApiResult


class SendCodeRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    phone_number: Optional[str] = Field(default=None, alias="phoneNumber")


class VerifyCodeRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    phone_number: Optional[str] = Field(default=None, alias="phoneNumber")
    code: Optional[str] = None


class VerifiedUser(BaseModel):
    """
    Minimal user record produced by a successful verification.
    country is the ISO-2 code of the detected country.
    """
    phone: str = Field(..., description="Normalized phone number")
    country: Optional[str] = None
    verified_at: datetime


class SendResult(ApiResult):
    sid: Optional[str] = Field(default=None, description="Twilio message SID")
    country: Optional[str] = Field(default=None, description="Detected country name")
    formatted_number: Optional[str] = None

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "success": True,
                "message": "Code envoyé sur WhatsApp 🇸🇳 Sénégal",
                "sid": "SM0123456789abcdef0123456789abcdef",
                "country": "Sénégal",
                "formatted_number": "+221701234567"
            }
        }
    )


class VerifyResult(ApiResult):
    remaining_attempts: Optional[int] = None
    user_data: Optional[VerifiedUser] = None
