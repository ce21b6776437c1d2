"""HTTP client for interacting with the absence.io API."""

from __future__ import annotations

import logging
from collections.abc import Generator
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import httpx
from mohawk import Sender

from .config import DEFAULT_API_BASE
from .models import Absence, Reason, User

logger = logging.getLogger(__name__)


class AbsenceApiError(RuntimeError):
    """Raised when absence.io returns an error response."""

    def __init__(self, endpoint: str, status_code: int, body: str) -> None:
        super().__init__(f"absence.io API error for {endpoint}: {status_code} {body[:200]}")
        self.endpoint = endpoint
        self.status_code = status_code
        self.body = body


class HawkAuth(httpx.Auth):
    """Signs every request with a Hawk ``Authorization`` header."""

    requires_request_body = True

    def __init__(self, key_id: str, key: str) -> None:
        self._credentials = {"id": key_id, "key": key, "algorithm": "sha256"}

    def auth_flow(self, request: httpx.Request) -> Generator[httpx.Request, httpx.Response, None]:
        sender = Sender(
            self._credentials,
            str(request.url),
            request.method,
            content=request.content,
            content_type=request.headers.get("Content-Type", ""),
        )
        request.headers["Authorization"] = sender.request_header
        yield request


class AbsenceClient:
    """Async wrapper around the absence.io endpoints used by Remote Days."""

    def __init__(
        self,
        key_id: str,
        key: str,
        base_url: str = DEFAULT_API_BASE,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._client = httpx.AsyncClient(
            base_url=base_url,
            auth=HawkAuth(key_id, key),
            headers={"Accept": "application/json"},
            timeout=timeout,
            transport=transport,
        )

    async def close(self) -> None:
        await self._client.aclose()

    async def _post(self, endpoint: str, payload: Dict[str, Any]) -> Any:
        response = await self._client.post(endpoint, json=payload)
        if response.is_error:
            raise AbsenceApiError(endpoint, response.status_code, response.text)
        return response.json()

    async def find_user_by_email(self, email: str, *, limit: int = 100) -> Optional[User]:
        """Scan the user list page by page; emails are compared case-insensitively."""

        skip = 0
        while True:
            data = await self._post("users", {"skip": skip, "limit": limit})
            records = data.get("data", [])
            for record in records:
                if (record.get("email") or "").lower() == email.lower():
                    return User(
                        id=record["_id"],
                        email=record["email"],
                        first_name=record.get("firstName"),
                        last_name=record.get("lastName"),
                    )
            if len(records) < limit:
                return None
            skip += limit

    async def find_reason_by_name(self, name: str) -> Optional[Reason]:
        data = await self._post("reasons", {"skip": 0, "limit": 50, "filter": {"name": name}})
        for record in data.get("data", []):
            if record.get("name") == name:
                return Reason(id=record["_id"], name=record["name"])
        return None

    async def fetch_absences(
        self,
        user_id: str,
        lower: datetime,
        upper: datetime,
        *,
        limit: int,
        skip: int,
    ) -> List[Absence]:
        """Return one page of the user's absences overlapping ``[lower, upper)``."""

        payload = {
            "skip": skip,
            "limit": limit,
            "filter": {
                "assignedToId": user_id,
                "start": {"$lt": to_utc_iso(upper)},
                "end": {"$gte": to_utc_iso(lower)},
            },
        }
        data = await self._post("absences", payload)
        records = data.get("data", [])
        logger.debug("Fetched %d absence(s) for %s (skip=%d)", len(records), user_id, skip)
        return [parse_absence(record) for record in records]

    async def create_absence(
        self,
        *,
        assignee_id: str,
        approver_id: str,
        start: datetime,
        end: datetime,
        reason_id: str,
    ) -> Absence:
        payload = {
            "assignedToId": assignee_id,
            "approverId": approver_id,
            "start": start.isoformat(),
            "end": end.isoformat(),
            "reasonId": reason_id,
        }
        logger.debug("Creating absence %s - %s for %s", payload["start"], payload["end"], assignee_id)
        record = await self._post("absences/create", payload)
        return parse_absence(record)


def parse_instant(value: str) -> datetime:
    normalized = value[:-1] + "+00:00" if value.endswith("Z") else value
    parsed = datetime.fromisoformat(normalized)
    return parsed if parsed.tzinfo is not None else parsed.replace(tzinfo=timezone.utc)


def to_utc_iso(value: datetime) -> str:
    return value.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_absence(record: Dict[str, Any]) -> Absence:
    return Absence(
        id=record["_id"],
        assigned_to_id=record["assignedToId"],
        approver_id=record.get("approverId"),
        start=parse_instant(record["start"]),
        end=parse_instant(record["end"]),
        reason_id=record.get("reasonId"),
    )


__all__ = [
    "AbsenceClient",
    "AbsenceApiError",
    "HawkAuth",
    "parse_absence",
    "parse_instant",
    "to_utc_iso",
]
