"""Staged status writes - optimistic local apply with compensation"""
import asyncio
from typing import Any, Awaitable, Callable, Mapping, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from ..domain.enums import ComplaintStatus, Role
from ..domain.errors import ComplaintNotFoundError
from ..domain.models import ChangeNotification, Complaint
from ..engine.transition_engine import StatusTransitionEngine
from .orchestrator import SyncOrchestrator
from ..utils.time import utc_now
from ..utils.logger import get_logger

logger = get_logger(__name__)

StatusWriter = Callable[[str, ComplaintStatus, str], Awaitable[Optional[Mapping[str, Any]]]]


class StatusUpdateCoordinator:
    """
    Status change as a staged write.

    1. Validate against the transition engine (nothing happens on denial)
    2. Apply a provisional record through the reconciler
    3. Issue the remote write
    4. Success: apply the server's confirmed record
       Failure: restore the prior record, unless something newer has
       already replaced the provisional one, then re-raise
    """

    def __init__(
        self,
        orchestrator: SyncOrchestrator,
        write_status: StatusWriter,
        engine: Optional[StatusTransitionEngine] = None
    ):
        self._orchestrator = orchestrator
        self._write_status = write_status
        self._engine = engine or StatusTransitionEngine()

    async def update_status(
        self,
        role: Union[Role, str, None],
        complaint_id: str,
        new_status: Union[ComplaintStatus, str],
        note: str = ""
    ) -> Complaint:
        current = self._orchestrator.snapshot.get(complaint_id)
        if current is None:
            raise ComplaintNotFoundError(
                f"Complaint {complaint_id} not found",
                details={"complaint_id": complaint_id}
            )

        target = self._engine.validate_transition(role, current.status, new_status)

        provisional = current.model_copy(update={"status": target, "updated_at": utc_now()})
        self._orchestrator.apply_local(ChangeNotification.upsert(provisional))

        try:
            confirmed_record = await self._write_status(complaint_id, target, note)
        except (Exception, asyncio.CancelledError):
            self._compensate(current, provisional)
            raise

        confirmed = self._parse_confirmation(complaint_id, confirmed_record)
        if confirmed is not None:
            self._orchestrator.apply_local(ChangeNotification.upsert(confirmed))

        logger.info(
            f"Status of {complaint_id} changed {current.status.value} -> {target.value}",
            extra={"complaint_id": complaint_id, "status": target.value, "role": getattr(role, "value", role)}
        )
        return self._orchestrator.snapshot.get(complaint_id) or confirmed or provisional

    def _compensate(self, prior: Complaint, provisional: Complaint) -> None:
        if self._orchestrator.snapshot.get(prior.id) != provisional:
            logger.info(
                f"Skipping rollback for {prior.id}: snapshot already moved on",
                extra={"complaint_id": prior.id}
            )
            return
        logger.warning(
            f"Status write for {prior.id} failed, restoring '{prior.status.value}'",
            extra={"complaint_id": prior.id, "status": prior.status.value}
        )
        self._orchestrator.apply_local(ChangeNotification.upsert(prior))

    @staticmethod
    def _parse_confirmation(
        complaint_id: str,
        record: Optional[Mapping[str, Any]]
    ) -> Optional[Complaint]:
        if not record:
            return None
        try:
            confirmed = Complaint.model_validate(dict(record))
        except PydanticValidationError:
            logger.warning(
                f"Ignoring unparseable write confirmation for {complaint_id}",
                extra={"complaint_id": complaint_id}
            )
            return None
        if confirmed.id != complaint_id:
            logger.warning(
                f"Write confirmation id {confirmed.id} does not match {complaint_id}",
                extra={"complaint_id": complaint_id}
            )
            return None
        return confirmed
