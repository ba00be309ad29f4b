"""Event Reconciler - Merge change notifications into complaint snapshots"""
from typing import Any, Dict, Iterable, List, Mapping, Union

from pydantic import ValidationError as PydanticValidationError

from ..domain.enums import ChangeKind
from ..domain.errors import MalformedMessageError
from ..domain.models import ChangeNotification, Complaint, ComplaintSnapshot
from ..utils.time import EPOCH
from ..utils.logger import get_logger
from .events import RawMessage, parse_envelope

logger = get_logger(__name__)

DEFAULT_MAX_SIZE = 200


class EventReconciler:
    """
    Pure merge logic over immutable snapshots.

    Given snapshot S and change C:
    1. Changes without an id never get here (the envelope adapter drops them)
    2. created/updated -> upsert by id (replace in place, else insert first)
    3. deleted -> remove by id, unknown id is a no-op
    4. Re-sort by createdAt descending (stable, so ties keep arrival order)
       and truncate to the retention cap

    Idempotent and order tolerant: the last applied change per id wins.
    A snapshot that would not change is returned as the same object.
    """

    def __init__(self, max_size: int = DEFAULT_MAX_SIZE):
        if max_size < 1:
            raise ValueError("max_size must be at least 1")
        self.max_size = max_size

    def empty(self) -> ComplaintSnapshot:
        """Initial snapshot"""
        return ComplaintSnapshot(max_size=self.max_size)

    def apply(self, snapshot: ComplaintSnapshot, change: ChangeNotification) -> ComplaintSnapshot:
        """Apply one normalized change"""
        if change.kind == ChangeKind.DELETED:
            return self._remove(snapshot, change.complaint_id)
        return self._upsert(snapshot, change.complaint)

    def apply_raw(self, snapshot: ComplaintSnapshot, raw: RawMessage) -> ComplaintSnapshot:
        """
        Apply one raw live message.

        Malformed messages are dropped and the snapshot is returned
        unchanged; a single bad frame never breaks the pipeline.
        """
        try:
            change = parse_envelope(raw)
        except MalformedMessageError as e:
            logger.debug(f"Dropping malformed live message: {e.message}")
            return snapshot

        if change is None:
            return snapshot

        next_snapshot = self.apply(snapshot, change)
        if next_snapshot is not snapshot:
            logger.debug(
                f"Reconciled {change.kind.value} for {change.complaint_id}",
                extra={
                    "complaint_id": change.complaint_id,
                    "change": change.kind.value,
                    "version": next_snapshot.version
                }
            )
        return next_snapshot

    def replace_all(
        self,
        snapshot: ComplaintSnapshot,
        records: Iterable[Union[Mapping[str, Any], Complaint]]
    ) -> ComplaintSnapshot:
        """
        Replace the whole snapshot with a freshly fetched list.

        Entries missing from the list disappear, which is how deletions
        missed while disconnected are reconciled away. Invalid records
        are dropped individually; a repeated id keeps its first position
        and its last value.
        """
        by_id: Dict[str, Complaint] = {}
        dropped = 0
        for record in records:
            complaint = self._coerce(record)
            if complaint is None:
                dropped += 1
                continue
            by_id[complaint.id] = complaint

        if dropped:
            logger.warning(
                f"Dropped {dropped} invalid complaint record(s) from fetched list",
                extra={"count": dropped}
            )

        return self._finalize(snapshot, list(by_id.values()))

    def _upsert(self, snapshot: ComplaintSnapshot, complaint: Complaint) -> ComplaintSnapshot:
        items = list(snapshot.items)
        for idx, existing in enumerate(items):
            if existing.id == complaint.id:
                if existing == complaint:
                    return snapshot
                items[idx] = complaint
                break
        else:
            items.insert(0, complaint)
        return self._finalize(snapshot, items)

    def _remove(self, snapshot: ComplaintSnapshot, complaint_id: str) -> ComplaintSnapshot:
        items = [c for c in snapshot.items if c.id != complaint_id]
        if len(items) == len(snapshot.items):
            return snapshot
        return self._finalize(snapshot, items)

    def _finalize(self, snapshot: ComplaintSnapshot, items: List[Complaint]) -> ComplaintSnapshot:
        # sort() is stable with reverse=True, equal keys keep their order
        items.sort(key=lambda c: c.created_at or EPOCH, reverse=True)
        return ComplaintSnapshot(
            items=tuple(items[:self.max_size]),
            version=snapshot.version + 1,
            max_size=self.max_size
        )

    @staticmethod
    def _coerce(record: Union[Mapping[str, Any], Complaint]) -> Union[Complaint, None]:
        if isinstance(record, Complaint):
            return record
        if not isinstance(record, Mapping):
            return None
        try:
            return Complaint.model_validate(dict(record))
        except PydanticValidationError:
            return None
