# Models package (re-export feature modules for stable imports)
from .users.user import User
from .auth.otp import OTPSession

__all__ = [
    "User",
    "OTPSession",
]
