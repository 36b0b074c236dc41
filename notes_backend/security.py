"""Password hashing and identity tokens.

Passwords are hashed with bcrypt through passlib's ``CryptContext``. The
cost factor comes from ``BCRYPT_ROUNDS``.

Identity tokens are HS256 JWTs carrying the user's email and id (``sub``)
plus an expiry. They are never stored server-side; a token is valid as long
as its signature checks out and it has not expired.
"""
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import Optional

from jose import JWTError, jwt
from passlib.context import CryptContext

from notes_backend import config
from notes_backend.errors import InvalidToken

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=config.BCRYPT_ROUNDS)


# PUBLIC_INTERFACE
def get_password_hash(password: str) -> str:
    """Hash a plaintext password and return the encoded hash string."""
    if password is None:
        raise ValueError("Password must not be None")
    return pwd_context.hash(password)


# PUBLIC_INTERFACE
def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Constant-time check of a plaintext password against a stored hash."""
    if plain_password is None or hashed_password is None:
        return False
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except ValueError:
        # malformed stored hash
        return False


@lru_cache(maxsize=1)
def dummy_hash() -> str:
    """A hash to verify against when no user matched, so misses cost the same as hits."""
    return pwd_context.hash("not-a-real-password")


@dataclass(frozen=True)
class TokenClaims:
    user_id: int
    email: str


# PUBLIC_INTERFACE
def issue_token(email: str, user_id: int, expires_delta: Optional[timedelta] = None) -> str:
    """Generates a signed JWT identity token."""
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta if expires_delta is not None else timedelta(minutes=config.ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode = {"sub": str(user_id), "email": email, "iat": now, "exp": expire}
    return jwt.encode(to_encode, config.SECRET_KEY, algorithm=config.ALGORITHM)


# PUBLIC_INTERFACE
def verify_token(token: Optional[str]) -> TokenClaims:
    """
    Decodes a token and returns its claims.
    Raises InvalidToken for anything that is not a well-formed, correctly
    signed, unexpired token with both claims present.
    """
    if not token:
        raise InvalidToken("Missing token")
    try:
        payload = jwt.decode(token, config.SECRET_KEY, algorithms=[config.ALGORITHM])
    except JWTError as exc:
        raise InvalidToken("Invalid or expired token") from exc

    sub = payload.get("sub")
    email = payload.get("email")
    if sub is None or not email:
        raise InvalidToken("Token is missing claims")
    try:
        user_id = int(sub)
    except (TypeError, ValueError) as exc:
        raise InvalidToken("Token subject is not a user id") from exc
    return TokenClaims(user_id=user_id, email=email)
