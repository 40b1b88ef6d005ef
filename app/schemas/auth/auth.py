# app/schemas/auth/auth.py
from pydantic import AfterValidator, BaseModel, ConfigDict, Field, field_validator
from typing import Annotated, Optional
import re

# Fields are optional so that a missing value reaches the service and gets
# its specific "... is required" message instead of a generic 422.


def _clean_phone(v: Optional[str]) -> Optional[str]:
    if v is None:
        return v
    phone_clean = re.sub(r'[\s\-()]', '', v)
    if phone_clean and not re.match(r'^\d{6,14}$', phone_clean):
        raise ValueError('Invalid phone number format')
    return phone_clean


def _check_country_code(v: Optional[str]) -> Optional[str]:
    if v is None:
        return v
    v = v.strip()
    if v and not re.match(r'^\+\d{1,4}$', v):
        raise ValueError('Country code must look like +966')
    return v or None


Phone = Annotated[Optional[str], AfterValidator(_clean_phone)]
CountryCode = Annotated[Optional[str], AfterValidator(_check_country_code)]


class SendOTPRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    phone: Phone = Field(None, description="Phone number without country code")
    country_code: CountryCode = Field(None, alias="countryCode", description="Country code, defaults to +966")


class VerifyOTPRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    phone: Phone = Field(None, description="Phone number without country code")
    otp: Optional[str] = Field(None, description="Numeric one-time code")
    session_id: Optional[str] = Field(None, alias="sessionId")
    country_code: CountryCode = Field(None, alias="countryCode")

    @field_validator('otp')
    @classmethod
    def validate_otp(cls, v):
        if v and not v.isdigit():
            raise ValueError('OTP must be numeric')
        return v


class ResendOTPRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    phone: Phone = Field(None, description="Phone number without country code")
    session_id: Optional[str] = Field(None, alias="sessionId")
    country_code: CountryCode = Field(None, alias="countryCode")
