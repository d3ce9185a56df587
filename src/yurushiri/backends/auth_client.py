"""Client for the hosted auth service (Supabase GoTrue REST API)"""

import logging
from typing import Optional

import httpx

from yurushiri.auth.models import AuthTokens, AuthUser, SignInResult, SignUpResult
from yurushiri.errors import AuthError

logger = logging.getLogger(__name__)

AUTH_TIMEOUT = 10.0


class AuthClient:
    """Email/password sign-in, sign-up, sign-out and user lookup"""

    def __init__(
        self,
        config: dict,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        base_url = (config.get("supabase_url") or "").rstrip("/")
        self.auth_url = f"{base_url}/auth/v1"
        self.anon_key = config.get("supabase_anon_key")
        self.redirect_url = config.get("redirect_url")
        self.is_configured = bool(base_url and self.anon_key)
        self._transport = transport

        if not self.is_configured:
            logger.warning(
                "Supabase URL or anon key not configured. Sign-in will be unavailable."
            )

    def _headers(self, access_token: Optional[str] = None) -> dict:
        headers = {"apikey": self.anon_key or ""}
        if access_token:
            headers["Authorization"] = f"Bearer {access_token}"
        return headers

    async def _request(
        self,
        method: str,
        path: str,
        access_token: Optional[str] = None,
        **kwargs,
    ) -> httpx.Response:
        if not self.is_configured:
            raise AuthError("Auth service is not configured")
        try:
            async with httpx.AsyncClient(
                transport=self._transport, timeout=AUTH_TIMEOUT
            ) as client:
                return await client.request(
                    method,
                    f"{self.auth_url}{path}",
                    headers=self._headers(access_token),
                    **kwargs,
                )
        except httpx.RequestError as e:
            logger.error(f"Auth service request {method} {path} failed: {e}")
            raise AuthError(f"Auth service request failed: {e}") from e

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            return response.text or f"HTTP {response.status_code}"
        if isinstance(body, dict):
            for key in ("error_description", "msg", "message", "error"):
                value = body.get(key)
                if isinstance(value, str) and value:
                    return value
        return f"HTTP {response.status_code}"

    @staticmethod
    def _parse_user(data: dict) -> AuthUser:
        return AuthUser(id=str(data["id"]), email=data.get("email"))

    @staticmethod
    def _parse_tokens(data: dict) -> AuthTokens:
        return AuthTokens(
            access_token=data["access_token"],
            refresh_token=data.get("refresh_token"),
            expires_in=data.get("expires_in"),
        )

    async def sign_in(self, email: str, password: str) -> SignInResult:
        """Password grant. Raises AuthError with the upstream message on failure."""
        response = await self._request(
            "POST",
            "/token",
            params={"grant_type": "password"},
            json={"email": email, "password": password},
        )
        if not response.is_success:
            raise AuthError(self._error_message(response), response.status_code)

        data = response.json()
        logger.info(f"User signed in: {data.get('user', {}).get('id')}")
        return SignInResult(
            user=self._parse_user(data["user"]), tokens=self._parse_tokens(data)
        )

    async def sign_up(
        self, email: str, password: str, redirect_to: Optional[str] = None
    ) -> SignUpResult:
        """Register a new account; e-mail confirmation is handled upstream."""
        params = {}
        redirect = self.redirect_url or redirect_to
        if redirect:
            params["redirect_to"] = redirect

        response = await self._request(
            "POST",
            "/signup",
            params=params,
            json={"email": email, "password": password},
        )
        if not response.is_success:
            raise AuthError(self._error_message(response), response.status_code)

        data = response.json()
        # Without confirmation the response is a full session, otherwise a bare user
        if "access_token" in data:
            return SignUpResult(
                user=self._parse_user(data["user"]), tokens=self._parse_tokens(data)
            )
        if data.get("id"):
            return SignUpResult(user=self._parse_user(data))
        return SignUpResult()

    async def sign_out(self, access_token: str) -> None:
        """Revoke the session upstream. Failures are logged, not raised."""
        try:
            response = await self._request("POST", "/logout", access_token=access_token)
        except AuthError:
            return
        if not response.is_success and response.status_code != 401:
            logger.warning(
                f"Sign-out returned {response.status_code}: {self._error_message(response)}"
            )

    async def get_user(self, access_token: str) -> Optional[AuthUser]:
        """
        Resolve the principal for an access token.

        Returns:
            The user, or None if the token is expired or invalid
        """
        response = await self._request("GET", "/user", access_token=access_token)
        if response.status_code in (401, 403):
            return None
        if not response.is_success:
            raise AuthError(self._error_message(response), response.status_code)
        return self._parse_user(response.json())

    async def refresh(self, refresh_token: str) -> SignInResult:
        """Exchange a refresh token for a new session"""
        response = await self._request(
            "POST",
            "/token",
            params={"grant_type": "refresh_token"},
            json={"refresh_token": refresh_token},
        )
        if not response.is_success:
            raise AuthError(self._error_message(response), response.status_code)
        data = response.json()
        return SignInResult(
            user=self._parse_user(data["user"]), tokens=self._parse_tokens(data)
        )
