"""Caller identity from the request's bearer token."""

from typing import Optional, Protocol

import httpx
from pydantic import BaseModel

from utils.logging import get_logger

logger = get_logger(__name__)


class Session(BaseModel):
    user_id: str
    email: Optional[str] = None


class SessionResolver(Protocol):
    async def resolve(self, authorization: Optional[str]) -> Optional[Session]:
        """The caller's session, or None when the token is missing or rejected."""
        ...


def bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


class SupabaseSessionResolver:
    """Validates the token against Supabase Auth (GET /auth/v1/user)."""

    def __init__(
        self,
        url: str,
        anon_key: str,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._url = url.rstrip("/")
        self._anon_key = anon_key
        self._timeout = timeout
        self._transport = transport

    async def resolve(self, authorization: Optional[str]) -> Optional[Session]:
        token = bearer_token(authorization)
        if token is None:
            return None
        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                response = await client.get(
                    f"{self._url}/auth/v1/user",
                    headers={"apikey": self._anon_key, "Authorization": f"Bearer {token}"},
                )
        except httpx.HTTPError as e:
            logger.warning("session_lookup_failed", error=str(e))
            return None
        if response.status_code != 200:
            return None
        data = response.json()
        user_id = data.get("id")
        if not user_id:
            return None
        email = data.get("email")
        return Session(user_id=user_id, email=email.lower() if email else None)
