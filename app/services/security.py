import hashlib
import secrets
import string
from datetime import datetime, timezone
from functools import lru_cache

from jose import JWTError, jwt
from passlib.context import CryptContext

SESSION_TOKEN_TYPE = "session"
VERIFICATION_CODE_LENGTH = 6
VERIFICATION_CODE_ALPHABET = string.ascii_uppercase + string.digits


def build_password_context(rounds: int) -> CryptContext:
    return CryptContext(
        schemes=["bcrypt"],
        deprecated="auto",
        bcrypt__rounds=rounds,
    )


def get_password_hash(password: str, context: CryptContext) -> str:
    return context.hash(password)


def verify_password(plain: str, hashed: str, context: CryptContext) -> bool:
    return context.verify(plain, hashed)


@lru_cache(maxsize=8)
def _dummy_password_hash(context: CryptContext) -> str:
    return context.hash(secrets.token_urlsafe(16))


def burn_password_check(plain: str, context: CryptContext) -> None:
    """Run a full hash verification against a throwaway hash.

    Used when the account does not exist so that the response takes as long
    as a real password check.
    """
    context.verify(plain, _dummy_password_hash(context))


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def tokens_match(raw: str, token_hash: str) -> bool:
    return secrets.compare_digest(hash_token(raw), token_hash)


def generate_verification_code() -> str:
    return "".join(secrets.choice(VERIFICATION_CODE_ALPHABET) for _ in range(VERIFICATION_CODE_LENGTH))


def create_session_token(user_id: int, expires_at: datetime, secret: str, algorithm: str) -> str:
    to_encode = {
        "sub": str(user_id),
        "type": SESSION_TOKEN_TYPE,
        "jti": secrets.token_urlsafe(16),
        "iat": datetime.now(timezone.utc),
        "exp": expires_at,
    }
    return jwt.encode(to_encode, secret, algorithm=algorithm)


def decode_session_token(token: str, secret: str, algorithm: str) -> int | None:
    """Return the user id carried by a structurally valid session token."""
    if not token:
        return None
    try:
        payload = jwt.decode(token, secret, algorithms=[algorithm])
        sub = payload.get("sub")
        if sub is None or payload.get("type") != SESSION_TOKEN_TYPE:
            return None
        return int(sub)
    except (JWTError, ValueError, TypeError):
        return None
