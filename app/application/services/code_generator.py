import hashlib
import hmac
import secrets
import string
import uuid


def generate_code(length: int = 6) -> str:
    """Generate a numeric one-time code from the OS CSPRNG."""
    if length < 1:
        raise ValueError("Code length must be positive")
    return "".join(secrets.choice(string.digits) for _ in range(length))


def new_session_id() -> str:
    return str(uuid.uuid4())


def hash_code(code: str, session_id: str, secret: str) -> str:
    # Keyed by session id so equal codes never share a hash.
    message = f"{session_id}:{code}".encode()
    return hmac.new(secret.encode(), message, hashlib.sha256).hexdigest()


def codes_match(code: str, session_id: str, secret: str, code_hash: str) -> bool:
    return hmac.compare_digest(hash_code(code, session_id, secret), code_hash)
