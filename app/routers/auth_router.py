# app/routers/auth_router.py
import logging
from typing import Optional

from fastapi import APIRouter, Depends

from ..application.services.auth_service import AuthService
from ..application.services.token_issuer import TokenClaims
from ..dependencies import auth_rate_limit, get_auth_service, get_bearer_token, get_current_claims
from ..schemas import ResendOTPRequest, SendOTPRequest, VerifyOTPRequest

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["Authentication"])


@router.post("/send-otp", dependencies=[Depends(auth_rate_limit)])
def send_otp(body: SendOTPRequest, auth: AuthService = Depends(get_auth_service)):
    result = auth.request_code(body.phone, body.country_code)
    response = {
        "success": True,
        "message": "OTP sent successfully",
        "sessionId": result.session_id,
    }
    if result.code is not None:
        response["otp"] = result.code
    return response


@router.post("/verify-otp", dependencies=[Depends(auth_rate_limit)])
def verify_otp(body: VerifyOTPRequest, auth: AuthService = Depends(get_auth_service)):
    result = auth.submit_code(body.phone, body.otp, body.session_id, body.country_code)
    user = result.user
    return {
        "success": True,
        "user": {
            "id": user.id,
            "phone": user.phone,
            "role": user.role,
            "isProfileComplete": user.is_profile_complete,
        },
        "tokens": result.tokens.to_dict(),
    }


@router.post("/resend-otp", dependencies=[Depends(auth_rate_limit)])
def resend_otp(body: ResendOTPRequest, auth: AuthService = Depends(get_auth_service)):
    result = auth.resend(body.phone, body.session_id, body.country_code)
    response = {
        "success": True,
        "message": "OTP resent successfully",
        "retryAfter": result.retry_after,
    }
    if result.code is not None:
        response["otp"] = result.code
    return response


@router.post("/refresh")
def refresh(token: Optional[str] = Depends(get_bearer_token), auth: AuthService = Depends(get_auth_service)):
    tokens = auth.refresh(token)
    return {"success": True, "tokens": tokens.to_dict()}


@router.post("/logout")
def logout(claims: TokenClaims = Depends(get_current_claims), auth: AuthService = Depends(get_auth_service)):
    auth.logout(claims)
    return {"success": True, "message": "Logged out successfully"}
