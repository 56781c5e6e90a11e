import logging
from dataclasses import dataclass, field
from typing import Optional

import jwt
from fastapi import Header, HTTPException

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuthContext:
    """Bearer token owned by the caller and passed down the pipeline.

    The identity provider issues and stores the token; this core only reads
    it. Claims are decoded without signature verification because the
    backend is the party that verifies them.
    """

    token: str
    claims: dict = field(default_factory=dict, compare=False, repr=False)

    @classmethod
    def from_token(cls, token: str) -> "AuthContext":
        return cls(token=token, claims=_peek_claims(token))

    @property
    def user_id(self) -> Optional[str]:
        sub = self.claims.get("sub")
        return str(sub) if sub else None

    def bearer_headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.token}",
            "Content-Type": "application/json",
        }


def _peek_claims(token: str) -> dict:
    """Read JWT claims without verifying; opaque tokens yield no claims."""
    if not token or token.count(".") != 2:
        return {}
    try:
        payload = jwt.decode(token, options={"verify_signature": False})
    except jwt.InvalidTokenError:
        logger.debug("Bearer token is not a decodable JWT")
        return {}
    return payload if isinstance(payload, dict) else {}


def get_auth_context(
    authorization: Optional[str] = Header(None, alias="Authorization"),
) -> AuthContext:
    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(401, "Missing bearer token")

    token = authorization.split(" ", 1)[1].strip()
    if not token:
        raise HTTPException(401, "Missing bearer token")
    return AuthContext.from_token(token)
