"""Authentication utilities for password hashing and JWT session tokens."""

import uuid
from datetime import datetime, timedelta, timezone

import bcrypt
from jose import JWTError, jwt

from .config import Settings
from .errors import ErrorKind, Err, Ok, Result, ServiceError
from .schemas import TokenClaims

# bcrypt only looks at the first 72 bytes of a password
_BCRYPT_MAX_BYTES = 72


# ==================== Password Hashing ====================

def hash_password(password: str) -> str:
    """Hash a plain text password using bcrypt with a random salt."""
    password_bytes = password.encode('utf-8')[:_BCRYPT_MAX_BYTES]
    hashed = bcrypt.hashpw(password_bytes, bcrypt.gensalt())
    return hashed.decode('utf-8')


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a plain text password against a hashed password."""
    password_bytes = plain_password.encode('utf-8')[:_BCRYPT_MAX_BYTES]
    try:
        return bcrypt.checkpw(password_bytes, hashed_password.encode('utf-8'))
    except ValueError:
        # Malformed stored hash
        return False


# ==================== JWT Token Management ====================

class TokenIssuer:
    """Mints and validates signed, stateless session tokens."""

    def __init__(self, settings: Settings):
        self._secret = settings.JWT_SECRET_KEY
        self._algorithm = settings.JWT_ALGORITHM
        self._issuer = settings.JWT_ISSUER
        self._audience = settings.JWT_AUDIENCE
        self._ttl = timedelta(hours=settings.JWT_EXPIRATION_HOURS)

    def issue(
        self,
        user_id: uuid.UUID,
        username: str,
        email: str,
        expires_delta: timedelta | None = None,
    ) -> tuple[str, datetime]:
        """Create a token for the user. Returns the token and its expiration time."""
        now = datetime.now(timezone.utc).replace(microsecond=0)
        expire = now + (expires_delta if expires_delta is not None else self._ttl)
        claims = {
            "sub": str(user_id),
            "unique_name": username,
            "email": email,
            "jti": uuid.uuid4().hex,
            "iat": now,
            "exp": expire,
            "iss": self._issuer,
            "aud": self._audience,
        }
        token = jwt.encode(claims, self._secret, algorithm=self._algorithm)
        return token, expire

    def validate(self, token: str) -> Result[TokenClaims]:
        """Verify signature, issuer, audience and expiration (no clock skew allowed).

        Every failure is reported the same way so callers learn nothing about which check failed.
        """
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                audience=self._audience,
                issuer=self._issuer,
                options={"leeway": 0, "require_exp": True, "require_sub": True},
            )
            claims = TokenClaims(
                user_id=uuid.UUID(payload["sub"]),
                username=payload["unique_name"],
                email=payload["email"],
                token_id=payload["jti"],
                expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
            )
        except (JWTError, KeyError, ValueError, TypeError):
            return Err(ServiceError(
                ErrorKind.UNAUTHENTICATED,
                "Invalid or expired authentication token",
            ))
        return Ok(claims)
