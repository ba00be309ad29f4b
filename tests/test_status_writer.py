"""StatusUpdateCoordinator - staged status writes"""
import asyncio

import pytest

from complaint_sync.domain.enums import ComplaintStatus, Role
from complaint_sync.domain.errors import (
    ComplaintNotFoundError, ComplaintWriteError, NoOpTransitionError, PermissionDeniedError
)
from complaint_sync.domain.models import ChangeNotification, Complaint
from complaint_sync.sync.orchestrator import SyncOrchestrator
from complaint_sync.sync.status_writer import StatusUpdateCoordinator

from tests.conftest import ZeroBackoff, make_complaint_data

pytestmark = pytest.mark.anyio


@pytest.fixture
async def orchestrator(fake_api, fake_connector):
    orchestrator = SyncOrchestrator(
        fake_api.list_complaints, "ws://test/ws/complaints",
        connector=fake_connector, backoff=ZeroBackoff()
    )
    await orchestrator.refresh()
    yield orchestrator
    await orchestrator.stop()


async def test_successful_write_applies_confirmation(orchestrator, fake_api):
    coordinator = StatusUpdateCoordinator(orchestrator, fake_api.update_status)
    published = []
    orchestrator.subscribe(published.append)

    result = await coordinator.update_status(Role.STAFF, "c1", "in_progress", note="on it")

    assert result.status == ComplaintStatus.IN_PROGRESS
    assert orchestrator.snapshot.get("c1").status == ComplaintStatus.IN_PROGRESS
    assert fake_api.writes == [("c1", ComplaintStatus.IN_PROGRESS, "on it")]
    assert published[-1].get("c1").status == ComplaintStatus.IN_PROGRESS


async def test_provisional_state_is_visible_during_write(orchestrator):
    seen_during_write = []

    async def write(complaint_id, status, note):
        seen_during_write.append(orchestrator.snapshot.get(complaint_id).status)
        return None

    coordinator = StatusUpdateCoordinator(orchestrator, write)
    result = await coordinator.update_status(Role.ADMIN, "c3", ComplaintStatus.CLOSED)

    assert seen_during_write == [ComplaintStatus.CLOSED]
    assert result.status == ComplaintStatus.CLOSED


async def test_failed_write_restores_prior_record(orchestrator, fake_api):
    fake_api.write_error = ComplaintWriteError("upstream 500")
    coordinator = StatusUpdateCoordinator(orchestrator, fake_api.update_status)
    prior = orchestrator.snapshot.get("c2")

    with pytest.raises(ComplaintWriteError):
        await coordinator.update_status(Role.STAFF, "c2", ComplaintStatus.RESOLVED)

    assert orchestrator.snapshot.get("c2") == prior


async def test_rollback_skipped_when_snapshot_moved_on(orchestrator):
    newer = Complaint.model_validate(make_complaint_data("c1", status="rejected"))

    async def write(complaint_id, status, note):
        # a live update lands while the write is in flight
        orchestrator.apply_local(ChangeNotification.upsert(newer))
        raise ComplaintWriteError("timeout")

    coordinator = StatusUpdateCoordinator(orchestrator, write)
    with pytest.raises(ComplaintWriteError):
        await coordinator.update_status(Role.STAFF, "c1", ComplaintStatus.IN_PROGRESS)

    assert orchestrator.snapshot.get("c1") == newer


@pytest.mark.parametrize("role,complaint_id,status,error", [
    (Role.USER, "c1", ComplaintStatus.IN_PROGRESS, PermissionDeniedError),
    (Role.STAFF, "c3", ComplaintStatus.PENDING, PermissionDeniedError),
    (Role.ADMIN, "c1", ComplaintStatus.PENDING, NoOpTransitionError),
    (Role.ADMIN, "missing", ComplaintStatus.CLOSED, ComplaintNotFoundError),
])
async def test_rejections_happen_before_any_write(orchestrator, fake_api, role, complaint_id, status, error):
    coordinator = StatusUpdateCoordinator(orchestrator, fake_api.update_status)
    version = orchestrator.snapshot.version

    with pytest.raises(error):
        await coordinator.update_status(role, complaint_id, status)

    assert fake_api.writes == []
    assert orchestrator.snapshot.version == version


async def test_mismatched_confirmation_is_ignored(orchestrator):
    async def write(complaint_id, status, note):
        return make_complaint_data("someone-else", status="closed")

    coordinator = StatusUpdateCoordinator(orchestrator, write)
    result = await coordinator.update_status(Role.ADMIN, "c1", ComplaintStatus.REJECTED)

    assert result.id == "c1"
    assert result.status == ComplaintStatus.REJECTED
    assert "someone-else" not in orchestrator.snapshot


async def test_cancelled_write_rolls_back(orchestrator):
    gate = asyncio.Event()

    async def write(complaint_id, status, note):
        await gate.wait()

    coordinator = StatusUpdateCoordinator(orchestrator, write)
    prior = orchestrator.snapshot.get("c1")
    task = asyncio.ensure_future(coordinator.update_status(Role.ADMIN, "c1", ComplaintStatus.CLOSED))
    await asyncio.sleep(0)
    assert orchestrator.snapshot.get("c1").status == ComplaintStatus.CLOSED

    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    assert orchestrator.snapshot.get("c1") == prior
