"""
Pytest Configuration and Fixtures

Shared fakes for the live channel and the complaint REST API.
"""
import os

# Keep test runs from writing rotating log files
os.environ.setdefault("LOG_TO_FILE", "false")

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

import pytest

from complaint_sync.sync.backoff import BackoffPolicy


BASE_TIME = datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc)

_CLOSE = object()


@pytest.fixture
def anyio_backend():
    return "asyncio"


def make_complaint_data(
    complaint_id: str = "c1",
    minutes: int = 0,
    **overrides: Any
) -> Dict[str, Any]:
    """Complaint payload as the REST API / live channel emit it"""
    created = BASE_TIME + timedelta(minutes=minutes)
    data = {
        "_id": complaint_id,
        "title": f"Complaint {complaint_id}",
        "description": "Water leaking from the ceiling",
        "category": "service",
        "priority": "medium",
        "status": "pending",
        "user": {"name": "Ada Reporter", "email": "ada@example.com"},
        "attachments": [],
        "createdAt": created.isoformat(),
        "updatedAt": created.isoformat(),
    }
    data.update(overrides)
    return data


def envelope(tag: str, data: Dict[str, Any]) -> Dict[str, Any]:
    return {"type": tag, "data": data}


class ZeroBackoff(BackoffPolicy):
    """Reconnects immediately and records the attempts it was asked about"""

    def __init__(self, delay: float = 0.0):
        super().__init__(base_seconds=0.0, cap_seconds=0.0, max_jitter_seconds=0.0)
        self.delay = delay
        self.attempts: List[int] = []

    def next_delay(self, attempt: int) -> float:
        self.attempts.append(attempt)
        return self.delay


class FakeChannel:
    """In-memory stand-in for a websocket connection"""

    def __init__(self):
        self.sent: List[str] = []
        self.close_code: Optional[int] = None
        self._inbox: asyncio.Queue = asyncio.Queue()

    async def send(self, message: str) -> None:
        self.sent.append(message)

    async def close(self, code: int = 1000, reason: str = "") -> None:
        if self.close_code is None:
            self.close_code = code
            self._inbox.put_nowait(_CLOSE)

    def feed(self, raw: Any) -> None:
        """Deliver a frame from the server"""
        self._inbox.put_nowait(raw)

    def drop(self) -> None:
        """Server closes the connection"""
        self._inbox.put_nowait(_CLOSE)

    def fail(self, exc: Exception) -> None:
        """Transport error on the next read"""
        self._inbox.put_nowait(exc)

    def __aiter__(self):
        return self

    async def __anext__(self) -> Any:
        item = await self._inbox.get()
        if item is _CLOSE:
            raise StopAsyncIteration
        if isinstance(item, Exception):
            raise item
        return item


class FakeConnector:
    """Connector handing out FakeChannels; can be told to refuse or hang"""

    def __init__(self, failures: int = 0, hang: bool = False):
        self.failures = failures
        self.hang = hang
        self.urls: List[str] = []
        self.channels: List[FakeChannel] = []

    @property
    def calls(self) -> int:
        return len(self.urls)

    @property
    def latest(self) -> FakeChannel:
        return self.channels[-1]

    async def __call__(self, url: str) -> FakeChannel:
        self.urls.append(url)
        if self.hang:
            await asyncio.sleep(3600)
        if self.failures > 0:
            self.failures -= 1
            raise ConnectionRefusedError("connection refused")
        channel = FakeChannel()
        self.channels.append(channel)
        return channel


class FakeComplaintApi:
    """Fetch/write collaborators backed by a dict"""

    def __init__(self, records: Optional[List[Dict[str, Any]]] = None):
        self.records = list(records or [])
        self.fetch_error: Optional[Exception] = None
        self.write_error: Optional[Exception] = None
        self.fetch_calls = 0
        self.writes: List[tuple] = []

    async def list_complaints(self) -> List[Dict[str, Any]]:
        self.fetch_calls += 1
        if self.fetch_error is not None:
            raise self.fetch_error
        return list(self.records)

    async def update_status(self, complaint_id: str, status, note: str = "") -> Optional[Dict[str, Any]]:
        self.writes.append((complaint_id, status, note))
        if self.write_error is not None:
            raise self.write_error
        for record in self.records:
            if record["_id"] == complaint_id:
                confirmed = dict(record, status=status.value, updatedAt=datetime.now(timezone.utc).isoformat())
                return confirmed
        return None


async def wait_until(predicate, timeout: float = 2.0) -> None:
    """Yield to the loop until predicate() holds"""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not reached in time")
        await asyncio.sleep(0.001)


@pytest.fixture
def fake_connector() -> FakeConnector:
    return FakeConnector()


@pytest.fixture
def fake_api() -> FakeComplaintApi:
    return FakeComplaintApi([
        make_complaint_data("c1", minutes=0),
        make_complaint_data("c2", minutes=10, status="in_progress"),
        make_complaint_data("c3", minutes=20, status="resolved", priority="high"),
    ])
