"""
Principal resolution from bearer tokens.
"""

from typing import Any, Dict, Optional

import jwt

from shared.errors import AuthenticationError
from shared.logging import get_logger
from ..rules.models import Principal

ANONYMOUS_PROVIDER = "anonymous"


class PrincipalResolver:
    """Turns an ``Authorization`` header into a Principal.

    No header means the unauthenticated principal. A header that is present
    but cannot be verified is an AuthenticationError, never a silent
    downgrade to unauthenticated.
    """

    def __init__(self, secret: str, algorithm: str = "HS256", audience: Optional[str] = None):
        self.secret = secret
        self.algorithm = algorithm
        self.audience = audience
        self.logger = get_logger("feedbacks.auth.principal")

    @classmethod
    def from_config(cls, config) -> "PrincipalResolver":
        return cls(config.auth_jwt_secret, config.auth_jwt_algorithm, config.auth_jwt_audience)

    def resolve_header(self, authorization: Optional[str]) -> Principal:
        if not authorization:
            return Principal.unauthenticated()

        scheme, _, token = authorization.partition(" ")
        if scheme.lower() != "bearer" or not token.strip():
            raise AuthenticationError("Invalid authorization header format")
        return self.resolve_token(token.strip())

    def resolve_token(self, token: str) -> Principal:
        claims = self.verify(token)
        return Principal(uid=claims["sub"], is_anonymous=self.is_anonymous(claims))

    def verify(self, token: str) -> Dict[str, Any]:
        try:
            claims = jwt.decode(
                token,
                self.secret,
                algorithms=[self.algorithm],
                audience=self.audience,
                options={
                    "require": ["sub"],
                    "verify_aud": self.audience is not None
                }
            )
        except jwt.PyJWTError as e:
            self.logger.warning("Token verification failed", error=str(e))
            raise AuthenticationError(f"Invalid token: {e}") from e

        if not isinstance(claims.get("sub"), str) or not claims["sub"]:
            raise AuthenticationError("Token subject is empty")
        return claims

    @staticmethod
    def is_anonymous(claims: Dict[str, Any]) -> bool:
        provider = (claims.get("firebase") or {}).get("sign_in_provider")
        return provider == ANONYMOUS_PROVIDER or claims.get("is_anonymous") is True
