"""
Token authority: issues and validates signed, time-limited JWTs.

Tokens are self-contained. The authority keeps no per-token state, so a token
stays valid until it expires even after its session is revoked from the
session cache. There is no revocation list.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional, Union

from jose import jwt, JWTError

from clinica.exceptions import InvalidTokenError
from clinica.schemas.auth import TokenClaims

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"
DEFAULT_TTL = timedelta(hours=24)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TokenAuthority:
    def __init__(
        self,
        secret: Union[str, bytes],
        ttl: timedelta = DEFAULT_TTL,
        issuer: str = "clinica-backend",
        clock: Callable[[], datetime] = utcnow,
    ):
        if not secret:
            raise ValueError("A signing secret is required")
        self._secret = secret.encode("utf-8") if isinstance(secret, str) else secret
        self.ttl = ttl
        self.issuer = issuer
        self._clock = clock

    @property
    def expires_in(self) -> int:
        return int(self.ttl.total_seconds())

    def issue(self, claims: TokenClaims) -> str:
        issued_at = claims.issued_at or self._clock()
        payload = {
            "id": claims.user_id,
            "usuario": claims.username,
            "rol": claims.role,
            "permisos": list(claims.permissions),
            "iat": int(issued_at.timestamp()),
            "exp": int((issued_at + self.ttl).timestamp()),
            "iss": self.issuer,
            "sub": str(claims.user_id),
        }
        return jwt.encode(payload, self._secret, algorithm=ALGORITHM)

    def validate(self, token: Optional[str]) -> TokenClaims:
        """
        Verify signature, issuer and expiry and return the embedded claims.
        Every failure is the same InvalidTokenError, whatever the cause.
        """
        if not token or not isinstance(token, str):
            raise InvalidTokenError()
        try:
            # Expiry is checked against the injected clock, not wall-clock time
            payload = jwt.decode(
                token, self._secret, algorithms=[ALGORITHM], issuer=self.issuer,
                options={"verify_exp": False},
            )
            if self._clock().timestamp() > payload["exp"]:
                raise JWTError("Signature has expired.")
            return TokenClaims(
                user_id=payload["id"],
                username=payload["usuario"],
                role=payload.get("rol"),
                permissions=payload.get("permisos") or [],
                issued_at=datetime.fromtimestamp(payload["iat"], timezone.utc),
                expires_at=datetime.fromtimestamp(payload["exp"], timezone.utc),
                issuer=payload.get("iss"),
            )
        except (JWTError, KeyError, TypeError, ValueError) as e:
            logger.debug("Token rejected: %s", e)
            raise InvalidTokenError() from e
