"""Complaint REST API client - fetch and write collaborators"""
from typing import Any, Dict, List, Optional

import httpx

from ..config.settings import Settings
from ..domain.enums import ComplaintStatus
from ..domain.errors import (
    ComplaintFetchError, ComplaintNotFoundError, ComplaintWriteError, PermissionDeniedError
)
from ..utils.logger import get_logger

logger = get_logger(__name__)

# Envelope paths the list endpoint has been seen to use, most specific first
LIST_PATHS = (
    ("data", "data"),
    ("data", "complaints"),
    ("data", "items"),
    ("data",),
    ("complaints",),
    ("results",),
    ("items",),
)


def _dig(payload: Any, path: tuple) -> Any:
    for key in path:
        if not isinstance(payload, dict):
            return None
        payload = payload.get(key)
    return payload


def extract_complaint_list(payload: Any) -> List[Dict[str, Any]]:
    """
    Flatten a list response into a list of complaint dicts.

    Accepts a bare list or any of ``{data: [...]}``, ``{data: {data: [...]}}``,
    ``{data: {complaints: [...]}}``, ``{complaints: [...]}``,
    ``{results: [...]}``, ``{items: [...]}``.

    Raises:
        ComplaintFetchError: No list found; an unknown envelope must not
            be mistaken for "no complaints" and wipe the snapshot
    """
    if isinstance(payload, list):
        return payload

    for path in LIST_PATHS:
        candidate = _dig(payload, path)
        if isinstance(candidate, list):
            return candidate

    raise ComplaintFetchError(
        "Unrecognized complaint list envelope",
        details={"keys": sorted(payload.keys()) if isinstance(payload, dict) else type(payload).__name__}
    )


def extract_complaint_record(payload: Any) -> Optional[Dict[str, Any]]:
    """Single complaint from a detail/write response, if present"""
    for path in (("data", "complaint"), ("complaint",), ("data",), ()):
        candidate = _dig(payload, path) if path else payload
        if isinstance(candidate, dict) and any(k in candidate for k in ("_id", "id", "complaintId")):
            return candidate
    return None


class ComplaintApiClient:
    """Thin async client for the complaint REST API"""

    def __init__(
        self,
        base_url: str,
        token: Optional[str] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.base_url = base_url.rstrip("/")
        self._token = token
        self._timeout = timeout
        self._transport = transport

    @classmethod
    def from_settings(cls, settings: Settings) -> "ComplaintApiClient":
        return cls(
            base_url=settings.api_base_url,
            token=settings.api_token,
            timeout=settings.request_timeout_seconds
        )

    def _client(self) -> httpx.AsyncClient:
        headers = {"Accept": "application/json"}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        return httpx.AsyncClient(
            base_url=self.base_url,
            headers=headers,
            timeout=self._timeout,
            transport=self._transport
        )

    async def list_complaints(self, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        """
        Fetch the complaint list.

        Raises:
            ComplaintFetchError: Transport failure, non-200 status or an
                unusable body
        """
        params = {"limit": limit} if limit else None

        async with self._client() as client:
            try:
                response = await client.get("/complaints", params=params)
            except httpx.HTTPError as e:
                raise ComplaintFetchError(
                    f"Complaint list request failed: {e!r}",
                    details={"url": f"{self.base_url}/complaints"}
                )

        if response.status_code != 200:
            raise ComplaintFetchError(
                f"Complaint API error: {response.status_code}",
                details={"status_code": response.status_code, "response": response.text[:500]}
            )

        try:
            payload = response.json()
        except ValueError:
            raise ComplaintFetchError(
                "Complaint list response is not JSON",
                details={"status_code": response.status_code}
            )

        complaints = extract_complaint_list(payload)
        logger.debug(f"Fetched {len(complaints)} complaint(s)", extra={"count": len(complaints)})
        return complaints

    async def update_status(
        self,
        complaint_id: str,
        status: ComplaintStatus,
        note: str = ""
    ) -> Optional[Dict[str, Any]]:
        """
        Request a status change.

        Returns:
            The confirmed complaint record, or None when the server sends
            no record back

        Raises:
            ComplaintNotFoundError: 404
            PermissionDeniedError: 403 (server-side transition rules)
            ComplaintWriteError: Any other failure
        """
        status_value = getattr(status, "value", status)

        async with self._client() as client:
            try:
                response = await client.patch(
                    f"/complaints/{complaint_id}/status",
                    json={"status": status_value, "note": note}
                )
            except httpx.HTTPError as e:
                raise ComplaintWriteError(
                    f"Status update request failed: {e!r}",
                    details={"complaint_id": complaint_id}
                )

        if response.status_code == 404:
            raise ComplaintNotFoundError(
                f"Complaint {complaint_id} not found",
                details={"complaint_id": complaint_id}
            )
        if response.status_code == 403:
            raise PermissionDeniedError(
                f"Server rejected status change to '{status_value}'",
                details={"complaint_id": complaint_id, "response": response.text[:500]}
            )
        if response.status_code not in (200, 201, 204):
            raise ComplaintWriteError(
                f"Complaint API error: {response.status_code}",
                details={
                    "complaint_id": complaint_id,
                    "status_code": response.status_code,
                    "response": response.text[:500]
                }
            )

        if response.status_code == 204 or not response.content:
            return None
        try:
            return extract_complaint_record(response.json())
        except ValueError:
            logger.warning(
                f"Status update response for {complaint_id} is not JSON",
                extra={"complaint_id": complaint_id}
            )
            return None
