"""Domain Models - Pydantic schemas for synchronized entities"""
from datetime import datetime
from typing import Any, Dict, Optional, Tuple
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator

from .enums import (
    ChangeKind, ComplaintCategory, ComplaintPriority, ComplaintStatus, ConnectionState
)
from ..utils.time import coerce_datetime


# ============================================================================
# Complaint
# ============================================================================

class Reporter(BaseModel):
    """Submitting user, display only"""
    model_config = ConfigDict(frozen=True, extra="ignore")

    name: str = Field(default="", description="Reporter display name")
    email: Optional[str] = Field(None, description="Reporter email")

    @field_validator("name", mode="before")
    @classmethod
    def _none_to_empty(cls, value: Any) -> Any:
        return "" if value is None else value


class Complaint(BaseModel):
    """
    Complaint record as seen by the sync layer.

    Accepts the field spellings the different producers emit (``_id`` /
    ``id`` / ``complaintId``, camelCase timestamps, ``user`` or
    ``contactInfo`` for the reporter). Instances are immutable.
    """
    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    id: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("id", "_id", "complaintId"),
        description="Opaque primary key"
    )
    title: str = ""
    description: str = ""
    category: ComplaintCategory = ComplaintCategory.OTHER
    priority: ComplaintPriority = ComplaintPriority.MEDIUM
    status: ComplaintStatus = ComplaintStatus.PENDING
    reporter: Optional[Reporter] = Field(
        None, validation_alias=AliasChoices("reporter", "user", "contactInfo")
    )
    attachments: Tuple[Any, ...] = Field(default_factory=tuple, description="Opaque file references")
    created_at: Optional[datetime] = Field(
        None, validation_alias=AliasChoices("created_at", "createdAt")
    )
    updated_at: Optional[datetime] = Field(
        None, validation_alias=AliasChoices("updated_at", "updatedAt")
    )

    @model_validator(mode="before")
    @classmethod
    def _default_updated_at(cls, data: Any) -> Any:
        """A record never updated carries its creation time as updatedAt"""
        if not isinstance(data, dict):
            return data
        if data.get("updated_at") or data.get("updatedAt"):
            return data
        created = data.get("created_at") or data.get("createdAt")
        if created:
            return {**data, "updatedAt": created}
        return data

    @field_validator("id", mode="before")
    @classmethod
    def _stringify_id(cls, value: Any) -> Any:
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value

    @field_validator("title", "description", mode="before")
    @classmethod
    def _none_to_empty(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("category", "priority", "status", mode="before")
    @classmethod
    def _normalize_enum_value(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().lower().replace(" ", "_")
        return value

    @field_validator("reporter", mode="before")
    @classmethod
    def _unpopulated_reference(cls, value: Any) -> Any:
        # Unpopulated user references arrive as bare ids
        if isinstance(value, str):
            return None
        return value

    @field_validator("attachments", mode="before")
    @classmethod
    def _attachments_tuple(cls, value: Any) -> Any:
        if value is None:
            return ()
        if isinstance(value, list):
            return tuple(value)
        return value

    @field_validator("created_at", "updated_at", mode="before")
    @classmethod
    def _parse_timestamp(cls, value: Any) -> Optional[datetime]:
        return coerce_datetime(value)

    @model_validator(mode="after")
    def _check_timestamps(self) -> "Complaint":
        if self.created_at and self.updated_at and self.updated_at < self.created_at:
            raise ValueError("updatedAt must not be earlier than createdAt")
        return self


# ============================================================================
# Change Notifications
# ============================================================================

class ChangeNotification(BaseModel):
    """
    Normalized inbound change.

    Created/updated changes carry the full record; deleted changes may
    carry only the id.
    """
    model_config = ConfigDict(frozen=True)

    kind: ChangeKind
    complaint_id: str = Field(..., min_length=1)
    complaint: Optional[Complaint] = None

    @model_validator(mode="after")
    def _upserts_carry_record(self) -> "ChangeNotification":
        if self.kind != ChangeKind.DELETED and self.complaint is None:
            raise ValueError(f"{self.kind.value} change requires a complaint record")
        return self

    @classmethod
    def upsert(cls, complaint: Complaint, kind: ChangeKind = ChangeKind.UPDATED) -> "ChangeNotification":
        """Build a created/updated change for a record"""
        return cls(kind=kind, complaint_id=complaint.id, complaint=complaint)

    @classmethod
    def deletion(cls, complaint_id: str) -> "ChangeNotification":
        """Build a deleted change for an id"""
        return cls(kind=ChangeKind.DELETED, complaint_id=complaint_id)


# ============================================================================
# Snapshot & Sync Status
# ============================================================================

class ComplaintSnapshot(BaseModel):
    """
    Immutable, ordered, deduplicated view of the synchronized complaints.

    Ordered by createdAt descending; at most ``max_size`` entries. Every
    reconciliation yields a new snapshot with a higher ``version``.
    """
    model_config = ConfigDict(frozen=True)

    items: Tuple[Complaint, ...] = Field(default_factory=tuple)
    version: int = 0
    max_size: int = Field(200, ge=1)

    def __len__(self) -> int:
        return len(self.items)

    def get(self, complaint_id: str) -> Optional[Complaint]:
        """Find a complaint by id"""
        for complaint in self.items:
            if complaint.id == complaint_id:
                return complaint
        return None

    def __contains__(self, complaint_id: object) -> bool:
        return isinstance(complaint_id, str) and self.get(complaint_id) is not None

    @property
    def ids(self) -> Tuple[str, ...]:
        """Complaint ids in snapshot order"""
        return tuple(c.id for c in self.items)


class SyncStatus(BaseModel):
    """Connectivity and snapshot freshness as exposed to projections"""
    state: ConnectionState
    attempt: int = 0
    snapshot_version: int = 0
    complaint_count: int = 0
    last_refreshed_at: Optional[datetime] = None


class SnapshotSummary(BaseModel):
    """Counts shown on dashboard stat cards"""
    total: int = 0
    by_status: Dict[str, int] = Field(default_factory=dict)
    by_priority: Dict[str, int] = Field(default_factory=dict)
    by_category: Dict[str, int] = Field(default_factory=dict)
