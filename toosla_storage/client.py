"""
Toosla API client — login, conditional read and conditional write.

Every call maps the HTTP outcome onto the exception taxonomy:
401 → AuthorizationError, 412 → ConflictError, transport failures and
any other unexpected status → NetworkError.

Security Note:
    Never log credentials, api keys or snapshot contents.
"""
import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any, Optional
from datetime import datetime
from dataclasses import dataclass

import orjson
import aiohttp

from .config import StorageConfig
from .exceptions import AuthorizationError, ConflictError, NetworkError
from .utils import format_timestamp, parse_timestamp

logger = logging.getLogger("toosla.client")


@dataclass
class LoginResult:
    account: str
    api_key: str


@dataclass
class ReadResult:
    """Outcome of a conditional read (200, 304 or 404)."""

    status: int
    content: Optional[dict] = None
    last_modified: Optional[datetime] = None

    @property
    def modified(self) -> bool:
        return self.status == 200

    @property
    def not_modified(self) -> bool:
        return self.status == 304

    @property
    def not_found(self) -> bool:
        return self.status == 404


class RetryPolicy(ABC):
    """Decides whether a failed request is attempted again.

    Only NetworkError failures are submitted to the policy.
    """

    @abstractmethod
    async def should_retry(self, attempt: int, error: NetworkError) -> bool:
        """Return True to send the request again."""


class NoRetry(RetryPolicy):
    """Fail fast: never retry."""

    async def should_retry(self, attempt: int, error: NetworkError) -> bool:
        return False


class StorageClient:
    """HTTP client for the ``/api/storage`` endpoints."""

    def __init__(
        self,
        config: Optional[StorageConfig] = None,
        retry_policy: Optional[RetryPolicy] = None,
    ):
        self.config = config or StorageConfig()
        self.retry_policy = retry_policy or NoRetry()
        self._session: Optional[aiohttp.ClientSession] = None

    async def __aenter__(self) -> "StorageClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.config.timeout),
                json_serialize=lambda obj: orjson.dumps(obj).decode("utf-8"),
            )
        return self._session

    async def close(self) -> None:
        if self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    async def _send(
        self,
        url: str,
        payload: dict,
        headers: dict,
        expected: tuple[int, ...],
    ) -> tuple[int, Any, Optional[datetime]]:
        """POST ``payload`` and return (status, body, last_modified).

        ``body`` is the decoded JSON document for 200 answers with a JSON
        body, None otherwise.
        """
        attempt = 0
        while True:
            attempt += 1
            try:
                return await self._post(url, payload, headers, expected)
            except NetworkError as err:
                if not await self.retry_policy.should_retry(attempt, err):
                    raise
                logger.info("Retrying %s (attempt %d): %s", url, attempt + 1, err)

    async def _post(
        self,
        url: str,
        payload: dict,
        headers: dict,
        expected: tuple[int, ...],
    ) -> tuple[int, Any, Optional[datetime]]:
        session = self._get_session()
        try:
            async with session.post(url, json=payload, headers=headers) as response:
                status = response.status
                text = await response.text()
                last_modified = parse_timestamp(response.headers.get("Last-Modified"))
        except asyncio.TimeoutError as err:
            raise NetworkError(f"request to {url} timed out") from err
        except aiohttp.ClientError as err:
            raise NetworkError(f"request to {url} failed: {err}") from err

        logger.debug("%s answered %d", url, status)
        if status == 401:
            raise AuthorizationError(text or "unauthorized", status)
        if status == 412:
            raise ConflictError(text or "precondition failed", status)
        if status not in expected:
            raise NetworkError(text or "unexpected status", status)

        body = None
        if status == 200 and text:
            try:
                body = orjson.loads(text)
            except orjson.JSONDecodeError:
                body = None
        return status, body, last_modified

    def _auth_headers(self, api_key: Optional[str]) -> dict:
        return {"Authorization": f"token {api_key}"}

    # ------------------------------------------------------------------
    # API
    # ------------------------------------------------------------------

    async def login(self, credentials: str) -> LoginResult:
        """Authenticate ``credentials`` (``account:secret``).

        Raises:
            AuthorizationError: If the credentials are refused.
            NetworkError: On transport failure or unexpected answer.
        """
        _, body, _ = await self._send(
            self.config.login_url,
            {"credentials": credentials},
            {},
            (200,),
        )
        if not isinstance(body, dict):
            raise NetworkError("invalid login response", 200)
        api_key = body.get("validationkey") or body.get("key")
        if not api_key:
            raise NetworkError("missing validation key in login response", 200)
        return LoginResult(account=body.get("account") or "", api_key=api_key)

    async def read(
        self,
        api_key: Optional[str],
        if_modified_since: Optional[datetime] = None,
    ) -> ReadResult:
        """Read the remote snapshot unless unchanged since ``if_modified_since``.

        Raises:
            AuthorizationError: If the api key is refused.
            NetworkError: On transport failure or unexpected answer.
        """
        headers = self._auth_headers(api_key)
        if if_modified_since is not None:
            headers["If-Modified-Since"] = format_timestamp(if_modified_since)
        status, body, last_modified = await self._send(
            self.config.read_url,
            {"path": self.config.remote_path},
            headers,
            (200, 304, 404),
        )
        if status == 200 and not isinstance(body, dict):
            raise NetworkError("remote snapshot is not a JSON object", status)
        return ReadResult(status=status, content=body, last_modified=last_modified)

    async def write(
        self,
        api_key: Optional[str],
        content: dict,
        if_unmodified_since: Optional[datetime] = None,
    ) -> Optional[datetime]:
        """Write ``content`` unless the remote changed after ``if_unmodified_since``.

        Returns:
            The server's new Last-Modified timestamp.

        Raises:
            ConflictError: If the remote copy is more recent (412).
            AuthorizationError: If the api key is refused.
            NetworkError: On transport failure or unexpected answer.
        """
        headers = self._auth_headers(api_key)
        if if_unmodified_since is not None:
            headers["If-Unmodified-Since"] = format_timestamp(if_unmodified_since)
        _, _, last_modified = await self._send(
            self.config.write_url,
            {"path": self.config.remote_path, "content": content},
            headers,
            (200,),
        )
        return last_modified
