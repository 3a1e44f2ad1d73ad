"""
Hosted Backend Adapter.

Remote collaborator and media uploader for the hosted backend the mobile
app uses: GoTrue auth (`/auth/v1`), PostgREST tables (`/rest/v1`) and
object storage (`/storage/v1`), all over httpx.

Every request runs through the resilience stack (outside-in):
    Circuit Breaker (aiobreaker) → Retry on transport errors (tenacity) → httpx timeout

Change signals come from a ChangeFeed. The default LocalChangeFeed echoes
this client's own writes; a realtime transport can be plugged in by
passing any object with the same `subscribe`/`publish` methods.

Usage:
    client = SupabaseClient.from_config()
    remote = SupabaseRemote(client)
    uploader = SupabaseMediaUploader(client)
"""

from collections.abc import Iterable
from typing import Any

import aiobreaker
import httpx
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from modules.client.core.exceptions import MediaFailureError, RemoteFailureError
from modules.client.core.logging import get_logger
from modules.client.core.resilience import create_circuit_breaker, log_retry
from modules.client.engine.media import MediaUploader, read_local_file
from modules.client.remote.base import ChangeCallback, RemoteCollaborator, Unsubscribe
from modules.client.remote.feed import LocalChangeFeed
from modules.client.schemas.note import CurrentUser, Note, NoteDraft

logger = get_logger(__name__)


def _error_message(response: httpx.Response) -> str:
    """Best-effort error text from a backend error body."""
    try:
        body = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    if isinstance(body, dict):
        for key in ("message", "msg", "error_description", "error"):
            if body.get(key):
                return str(body[key])
    return response.reason_phrase


class SupabaseClient:
    """
    HTTP client for the hosted backend.

    Features:
    - apikey and bearer headers from the anon key and session token
    - Circuit breaker and retry around every request
    - Structured logging of requests/responses
    """

    def __init__(
        self,
        base_url: str,
        anon_key: str,
        access_token: str | None = None,
        timeout: float = 15.0,
        retry_attempts: int = 3,
        retry_wait_min: float = 0.5,
        retry_wait_max: float = 5.0,
        breaker: aiobreaker.CircuitBreaker | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.anon_key = anon_key
        self.access_token = access_token
        self.timeout = timeout
        self._retry_attempts = retry_attempts
        self._retry_wait_min = retry_wait_min
        self._retry_wait_max = retry_wait_max
        self._breaker = breaker or create_circuit_breaker("remote-store")
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @classmethod
    def from_config(cls, transport: httpx.AsyncBaseTransport | None = None) -> "SupabaseClient":
        """Build a client from remote.yaml and the .env secrets."""
        from modules.client.core.config import get_app_config, get_remote_base_url, get_settings

        remote = get_app_config().remote
        settings = get_settings()
        base_url, timeout = get_remote_base_url()
        return cls(
            base_url=base_url,
            anon_key=settings.supabase_anon_key,
            access_token=settings.supabase_access_token,
            timeout=timeout,
            retry_attempts=remote.retry.attempts,
            retry_wait_min=remote.retry.wait_min_seconds,
            retry_wait_max=remote.retry.wait_max_seconds,
            breaker=create_circuit_breaker(
                "remote-store",
                fail_max=remote.circuit_breaker.fail_max,
                timeout_duration=remote.circuit_breaker.timeout_duration,
            ),
            transport=transport,
        )

    @property
    def signed_in(self) -> bool:
        return bool(self.access_token)

    def _headers(self) -> dict[str, str]:
        return {
            "apikey": self.anon_key,
            "Authorization": f"Bearer {self.access_token or self.anon_key}",
        }

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                headers=self._headers(),
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def _send(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        client = await self._get_client()
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self._retry_attempts),
            wait=wait_exponential(multiplier=1, min=self._retry_wait_min, max=self._retry_wait_max),
            retry=retry_if_exception_type(httpx.TransportError),
            before_sleep=log_retry,
            reraise=True,
        ):
            with attempt:
                response = await client.request(method, path, **kwargs)
                if response.status_code >= 500:
                    # Server-side failures count against the breaker
                    response.raise_for_status()
        return response

    async def request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        """
        Make a request to the backend.

        Client errors (4xx) are returned to the caller; transport failures,
        server errors and an open breaker raise.

        Raises:
            RemoteFailureError: On transport failure, 5xx, or open breaker
        """
        logger.debug("Remote request", extra={"method": method, "path": path})
        try:
            response = await self._breaker.call_async(self._send, method, path, **kwargs)
        except aiobreaker.CircuitBreakerError as e:
            raise RemoteFailureError("Remote store unavailable, try again shortly") from e
        except httpx.HTTPStatusError as e:
            raise RemoteFailureError(
                _error_message(e.response), status_code=e.response.status_code,
            ) from e
        except httpx.HTTPError as e:
            logger.error(
                "Remote request failed",
                extra={"method": method, "path": path, "error": str(e)},
            )
            raise RemoteFailureError(f"Network error: {e}") from e

        logger.debug(
            "Remote response",
            extra={"method": method, "path": path, "status_code": response.status_code},
        )
        return response

    @staticmethod
    def raise_for_status(response: httpx.Response) -> None:
        """Raise RemoteFailureError for any error response."""
        if response.is_error:
            raise RemoteFailureError(_error_message(response), status_code=response.status_code)


class SupabaseRemote(RemoteCollaborator):
    """Notes table, auth and change signals on the hosted backend."""

    def __init__(
        self,
        client: SupabaseClient,
        table: str = "notes",
        feed: LocalChangeFeed | None = None,
    ) -> None:
        self._client = client
        self._path = f"/rest/v1/{table}"
        self.feed = feed or LocalChangeFeed()

    async def get_current_user(self) -> CurrentUser | None:
        if not self._client.signed_in:
            return None
        response = await self._client.request("GET", "/auth/v1/user")
        if response.status_code in (401, 403):
            logger.info("Session rejected by auth service", extra={"status_code": response.status_code})
            return None
        self._client.raise_for_status(response)
        return CurrentUser.model_validate(response.json())

    async def list_notes(self, owner_id: str) -> list[Note]:
        response = await self._client.request(
            "GET",
            self._path,
            params={
                "select": "*",
                "user_id": f"eq.{owner_id}",
                "order": "created_at.desc",
            },
        )
        self._client.raise_for_status(response)
        return [Note.model_validate(row) for row in response.json()]

    async def insert_note(self, owner_id: str, draft: NoteDraft) -> None:
        row = {**draft.to_row(), "user_id": owner_id}
        response = await self._client.request(
            "POST",
            self._path,
            json=[row],
            headers={"Prefer": "return=minimal"},
        )
        self._client.raise_for_status(response)
        self.feed.publish()

    async def update_note(self, note_id: str, draft: NoteDraft) -> None:
        response = await self._client.request(
            "PATCH",
            self._path,
            params={"id": f"eq.{note_id}"},
            json=draft.to_row(),
            headers={"Prefer": "return=minimal"},
        )
        self._client.raise_for_status(response)
        self.feed.publish()

    async def delete_notes(self, ids: Iterable[str]) -> None:
        id_list = ",".join(sorted(str(note_id) for note_id in ids))
        response = await self._client.request(
            "DELETE",
            self._path,
            params={"id": f"in.({id_list})"},
        )
        self._client.raise_for_status(response)
        self.feed.publish()

    def subscribe_to_changes(self, owner_id: str, on_change: ChangeCallback) -> Unsubscribe:
        return self.feed.subscribe(owner_id, on_change)


class SupabaseMediaUploader(MediaUploader):
    """Uploads attachments to a public storage bucket."""

    def __init__(self, client: SupabaseClient, bucket: str = "notes-media") -> None:
        self._client = client
        self.bucket = bucket

    def public_url(self, key: str) -> str:
        return f"{self._client.base_url}/storage/v1/object/public/{self.bucket}/{key}"

    async def upload(self, local_ref: str, key: str, content_type: str) -> str:
        payload = await read_local_file(local_ref)
        try:
            response = await self._client.request(
                "POST",
                f"/storage/v1/object/{self.bucket}/{key}",
                content=payload,
                headers={"Content-Type": content_type},
            )
            self._client.raise_for_status(response)
        except RemoteFailureError as e:
            raise MediaFailureError(e.message) from e
        return self.public_url(key)
