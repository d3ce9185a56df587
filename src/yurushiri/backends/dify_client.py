"""Client for the hosted Dify chat and file APIs"""

import base64
import binascii
import logging
from typing import Any, Optional

import httpx

from yurushiri.errors import DifyError

logger = logging.getLogger(__name__)

CHAT_MESSAGES_ENDPOINT = "/v1/chat-messages"
FILES_UPLOAD_ENDPOINT = "/v1/files/upload"

# Abort window for one blocking chat call, in seconds
DEFAULT_CHAT_TIMEOUT = 75.0
MIN_CHAT_TIMEOUT = 60.0
MAX_CHAT_TIMEOUT = 90.0


def clamp_chat_timeout(timeout_ms: Any) -> float:
    """
    Convert a client-supplied timeoutMs into seconds within the allowed window.

    Non-numeric values (and booleans) fall back to the default.
    """
    if isinstance(timeout_ms, bool) or not isinstance(timeout_ms, (int, float)):
        return DEFAULT_CHAT_TIMEOUT
    seconds = float(timeout_ms) / 1000.0
    return max(MIN_CHAT_TIMEOUT, min(MAX_CHAT_TIMEOUT, seconds))


class DifyClient:
    """Thin async wrapper over the Dify REST API"""

    def __init__(
        self,
        config: dict,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = (config.get("dify_api_base_url") or "https://api.dify.ai").rstrip(
            "/"
        )
        self.api_key = config.get("dify_api_key")
        # Tests inject an httpx.MockTransport here
        self._transport = transport

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    def _auth_headers(self) -> dict:
        if not self.api_key:
            raise DifyError(
                "DIFY_API_KEY is not set. Please add it to your environment configuration."
            )
        return {"Authorization": f"Bearer {self.api_key}"}

    def _client(self, timeout: float) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            transport=self._transport,
            timeout=httpx.Timeout(timeout, connect=10.0),
        )

    @staticmethod
    def _error_body(response: httpx.Response) -> Optional[str]:
        try:
            text = response.text
        except Exception as e:
            logger.error(f"Failed to read Dify error response body: {e}")
            return None
        return text or None

    async def send_chat_message(
        self,
        query: str,
        inputs: Optional[dict] = None,
        conversation_id: Optional[str] = None,
        user: Optional[str] = None,
        files: Optional[list] = None,
        response_mode: str = "blocking",
        timeout: float = DEFAULT_CHAT_TIMEOUT,
    ) -> dict:
        """
        Send one chat message and return the raw upstream JSON.

        Args:
            query: The user query, must not be blank
            inputs: App input variables
            conversation_id: Continue an existing conversation when given
            user: End-user identifier, defaults to "server"
            files: File references from upload_file() or remote URLs
            response_mode: "blocking" or "streaming"
            timeout: Abort after this many seconds

        Returns:
            Parsed JSON response

        Raises:
            DifyError: On a blank query, missing API key, transport error
                or a non-2xx response
        """
        if not query or not query.strip():
            raise DifyError("query is required to send a Dify chat message")

        headers = self._auth_headers()

        payload: dict[str, Any] = {
            "inputs": inputs or {},
            "query": query,
            "response_mode": response_mode,
            "user": user or "server",
            "files": files or [],
        }
        if conversation_id and conversation_id.strip():
            payload["conversation_id"] = conversation_id

        try:
            async with self._client(timeout) as client:
                response = await client.post(
                    f"{self.base_url}{CHAT_MESSAGES_ENDPOINT}",
                    json=payload,
                    headers=headers,
                )
        except httpx.TimeoutException as e:
            raise DifyError(
                f"Dify chat messages API timed out after {timeout:.0f}s"
            ) from e
        except httpx.RequestError as e:
            raise DifyError(f"Failed to reach Dify chat messages API: {e}") from e

        if not response.is_success:
            body = self._error_body(response)
            raise DifyError(
                f"Failed to call Dify chat messages API: {response.status_code} "
                f"{response.reason_phrase}" + (f" - {body}" if body else "")
            )

        try:
            return response.json()
        except ValueError as e:
            raise DifyError("Dify chat messages API returned invalid JSON") from e

    async def upload_file(
        self,
        content: bytes,
        file_name: str,
        mime_type: str,
        user: str = "server",
        timeout: float = 60.0,
    ) -> str:
        """
        Upload a file for later reference in a chat call.

        Returns:
            The upstream upload file id

        Raises:
            DifyError: On transport errors, non-2xx or a response without an id
        """
        headers = self._auth_headers()

        try:
            async with self._client(timeout) as client:
                response = await client.post(
                    f"{self.base_url}{FILES_UPLOAD_ENDPOINT}",
                    files={"file": (file_name, content, mime_type)},
                    data={"user": user},
                    headers=headers,
                )
        except httpx.RequestError as e:
            raise DifyError(f"Failed to reach Dify file upload API: {e}") from e

        if not response.is_success:
            body = self._error_body(response)
            raise DifyError(
                f"Failed to upload file to Dify: {response.status_code} "
                f"{response.reason_phrase}" + (f" - {body}" if body else "")
            )

        try:
            upload_id = response.json().get("id")
        except (ValueError, AttributeError) as e:
            raise DifyError("Dify file upload API returned invalid JSON") from e

        if not isinstance(upload_id, str) or not upload_id:
            raise DifyError("Dify file upload response did not include a file id")

        logger.info(f"Uploaded {file_name} ({mime_type}) to Dify as {upload_id}")
        return upload_id

    async def upload_base64_file(
        self, base64_data: str, file_name: str, mime_type: str, user: str = "server"
    ) -> str:
        """Decode a base64 payload and upload it"""
        try:
            content = base64.b64decode(base64_data, validate=False)
        except (binascii.Error, ValueError) as e:
            raise DifyError(f"Invalid base64 payload for {file_name}") from e
        return await self.upload_file(content, file_name, mime_type, user=user)

    async def download(
        self, url: str, authorized: bool = False, timeout: float = 30.0
    ) -> tuple[bytes, Optional[str]]:
        """
        Fetch a remote file (e.g. a generated image).

        Returns:
            (content, content_type header or None)

        Raises:
            DifyError: On transport errors or non-2xx
        """
        headers = {}
        if authorized and self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"

        try:
            async with self._client(timeout) as client:
                response = await client.get(url, headers=headers, follow_redirects=True)
        except httpx.RequestError as e:
            raise DifyError(f"Failed to download {url}: {e}") from e

        if not response.is_success:
            raise DifyError(
                f"Failed to download {url}: {response.status_code} {response.reason_phrase}"
            )
        return response.content, response.headers.get("content-type")
