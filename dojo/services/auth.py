"""
Authentication against the hosted auth endpoint.

Password sign-in and sign-out over HTTP, the signed-in user decoded from
the access token, and role lookup through the role table.
"""

from __future__ import annotations

import logging

import httpx
import jwt

from dojo.config import settings
from dojo.models.user import AuthSession
from katalog.errors import GatewayError
from katalog.gateway import AuthGateway, RoleGateway
from katalog.types import AuthUser, UserRole

logger = logging.getLogger(__name__)


def _error_message(response: httpx.Response) -> str:
    """The auth server's own message, whichever key it used."""
    try:
        body = response.json()
    except ValueError:
        return response.text or f"Auth request failed ({response.status_code})"
    for key in ("error_description", "msg", "message", "error"):
        if isinstance(body, dict) and body.get(key):
            return str(body[key])
    return f"Auth request failed ({response.status_code})"


def decode_access_token(token: str) -> dict:
    """
    Decode and verify an access token.

    Args:
        token: JWT issued by the auth server

    Returns:
        Decoded payload

    Raises:
        GatewayError: If the token is invalid or expired
    """
    try:
        return jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[settings.JWT_ALGORITHM],
            audience=settings.JWT_AUDIENCE,
        )
    except jwt.ExpiredSignatureError as e:
        raise GatewayError("Session expired. Please sign in again.") from e
    except jwt.InvalidTokenError as e:
        raise GatewayError("Invalid session token. Please sign in again.") from e


class AuthService(AuthGateway):
    """HTTP client for the auth endpoint. Holds the current session's tokens."""

    def __init__(
        self,
        roles: RoleGateway,
        auth_url: str | None = None,
        api_key: str | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.roles = roles
        self.auth_url = (auth_url or settings.AUTH_URL).rstrip("/")
        self.api_key = api_key if api_key is not None else settings.AUTH_API_KEY
        self.client = client or httpx.AsyncClient(timeout=30.0)
        self.session: AuthSession | None = None

    def _headers(self, token: str | None = None) -> dict:
        """Build request headers."""
        headers = {"Content-Type": "application/json", "apikey": self.api_key}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    async def _post(self, path: str, data: dict | None = None, token: str | None = None) -> httpx.Response:
        url = f"{self.auth_url}{path}"
        try:
            res = await self.client.post(url, json=data or {}, headers=self._headers(token))
        except httpx.HTTPError as e:
            raise GatewayError(f"Could not reach the auth server: {e}") from e
        if res.status_code >= 400:
            raise GatewayError(_error_message(res))
        return res

    async def sign_in(self, email: str, password: str) -> AuthUser:
        """
        Password sign-in.

        Args:
            email: Account email
            password: Account password

        Returns:
            The signed-in user

        Raises:
            GatewayError: With the server's message, e.g. "Invalid login credentials"
        """
        res = await self._post("/auth/v1/token?grant_type=password", {"email": email, "password": password})
        session = AuthSession.model_validate(res.json())
        user = self._user_from_token(session.access_token, session.user)
        self.session = session
        logger.info("auth: signed in %s", user.id)
        return user

    async def sign_out(self) -> None:
        """End the session on the server, then forget it locally."""
        session = self.session
        if session is None:
            return
        try:
            await self._post("/auth/v1/logout", token=session.access_token)
        finally:
            self.session = None

    async def current_user(self) -> AuthUser | None:
        """
        The signed-in user, or None.

        An expired or invalid token ends the session.
        """
        if self.session is None:
            return None
        try:
            return self._user_from_token(self.session.access_token, self.session.user)
        except GatewayError as e:
            logger.info("auth: dropping session: %s", e)
            self.session = None
            return None

    async def role_of(self, user_id: str) -> UserRole:
        return await self.roles.get_role(user_id)

    async def close(self) -> None:
        await self.client.aclose()

    @staticmethod
    def _user_from_token(token: str, user: dict) -> AuthUser:
        claims = decode_access_token(token)
        if not claims.get("sub"):
            raise GatewayError("Invalid session token. Please sign in again.")
        metadata = user.get("user_metadata") or claims.get("user_metadata") or {}
        email = user.get("email") or claims.get("email") or ""
        return AuthUser(
            id=str(claims.get("sub")),
            email=email,
            display_name=metadata.get("full_name") or email.split("@")[0],
        )
