"""
Identity provider — verifies bearer tokens.

Tokens are JWTs whose ``sub`` claim is the user id. The engine
trusts the verified identity for every authorization check
(recipient, claimer, original sender).
"""

from dataclasses import dataclass

import jwt

from topup_store.config import get_settings
from topup_store.errors import InvalidTokenError


@dataclass(frozen=True)
class Identity:
    user_id: str
    email: str | None = None
    display_name: str | None = None


class JwtIdentityProvider:

    def __init__(self, secret: str | None = None, algorithm: str | None = None):
        settings = get_settings()
        self.secret = secret or settings.JWT_SECRET
        self.algorithm = algorithm or settings.JWT_ALGORITHM

    def verify_token(self, token: str) -> Identity:
        try:
            claims = jwt.decode(token, self.secret, algorithms=[self.algorithm])
        except jwt.PyJWTError as e:
            raise InvalidTokenError(f"Invalid token: {e}") from e

        user_id = claims.get("sub")
        if not user_id:
            raise InvalidTokenError("Token has no subject")
        return Identity(
            user_id=str(user_id),
            email=claims.get("email"),
            display_name=claims.get("name"),
        )

    def issue_token(self, identity: Identity) -> str:
        """Mint a token for an identity (local development and tests)."""
        claims = {"sub": identity.user_id}
        if identity.email:
            claims["email"] = identity.email
        if identity.display_name:
            claims["name"] = identity.display_name
        return jwt.encode(claims, self.secret, algorithm=self.algorithm)
