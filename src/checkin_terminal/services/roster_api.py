"""HTTP client for the remote roster authority.

Both calls are thin wrappers around ``httpx.AsyncClient``. Anything other than
a usable 2xx response is raised as :class:`RosterApiError` so callers can fall
back to local state.
"""

from __future__ import annotations

import logging
from typing import Any, List, Optional

import httpx

from checkin_terminal.models import Participant

logger = logging.getLogger(__name__)


class RosterApiError(RuntimeError):
    """Raised when the roster authority cannot be reached or rejects a call."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class MalformedRosterError(RosterApiError):
    """Raised when the roster response is empty or cannot be parsed."""


class RosterApiClient:
    def __init__(
        self,
        base_url: str,
        *,
        roster_path: str = "/admin/participants",
        mark_attended_path: str = "/admin/participant/mark-attended",
        mark_attended_method: str = "PUT",
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._roster_path = roster_path
        self._mark_attended_path = mark_attended_path.rstrip("/")
        self._mark_attended_method = mark_attended_method.upper()
        self._timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    def base_url(self) -> str:
        return self._base_url

    async def fetch_participants(self) -> List[Participant]:
        response = await self._request("GET", self._roster_path)
        try:
            body = response.json()
        except ValueError as exc:
            raise MalformedRosterError("Roster response is not valid JSON") from exc

        records = _extract_records(body)
        if not records:
            raise MalformedRosterError("Roster response contained no participants")

        participants: List[Participant] = []
        seen: set[int] = set()
        for index, record in enumerate(records):
            if not isinstance(record, dict):
                raise MalformedRosterError(f"Roster record {index} is not an object")
            try:
                participant = Participant.from_dict(record)
            except (KeyError, TypeError, ValueError) as exc:
                raise MalformedRosterError(f"Roster record {index} is malformed: {exc}") from exc
            if participant.id in seen:
                raise MalformedRosterError(f"Roster lists participant {participant.id} more than once")
            seen.add(participant.id)
            participants.append(participant)
        logger.debug("Fetched %d participants from %s", len(participants), self._base_url)
        return participants

    async def mark_attended(self, participant_id: int) -> None:
        await self._request(
            self._mark_attended_method,
            f"{self._mark_attended_path}/{int(participant_id)}",
        )

    async def probe(self) -> bool:
        """Return True when the authority answers at all, whatever the status code."""
        try:
            await self._client_instance().request("HEAD", self._base_url + "/")
        except httpx.HTTPError:
            return False
        return True

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _client_instance(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self._timeout,
                transport=self._transport,
                headers={"Accept": "application/json"},
            )
        return self._client

    async def _request(self, method: str, path: str) -> httpx.Response:
        url = self._base_url + path
        try:
            response = await self._client_instance().request(method, url)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            raise RosterApiError(f"{method} {url} returned HTTP {status}", status_code=status) from exc
        except httpx.TimeoutException as exc:
            raise RosterApiError(f"{method} {url} timed out") from exc
        except httpx.RequestError as exc:
            raise RosterApiError(f"{method} {url} failed: {exc.__class__.__name__}") from exc
        return response


def _extract_records(body: Any) -> list:
    if isinstance(body, list):
        return body
    if isinstance(body, dict):
        for key in ("participants", "data"):
            value = body.get(key)
            if isinstance(value, list):
                return value
    raise MalformedRosterError("Roster response is not a list of participants")
