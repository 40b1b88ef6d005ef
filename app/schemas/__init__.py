# Schemas package (re-export feature modules for stable imports)
from .auth.auth import SendOTPRequest, VerifyOTPRequest, ResendOTPRequest

__all__ = [
    "SendOTPRequest",
    "VerifyOTPRequest",
    "ResendOTPRequest",
]
