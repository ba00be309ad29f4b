"""Domain Enumerations - All status and type definitions"""
from enum import Enum


class ComplaintStatus(str, Enum):
    """Complaint workflow status"""
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    RESOLVED = "resolved"
    REJECTED = "rejected"
    CLOSED = "closed"


class ComplaintCategory(str, Enum):
    """Complaint classification"""
    TECHNICAL = "technical"
    BILLING = "billing"
    SERVICE = "service"
    PRODUCT = "product"
    HARASSMENT = "harassment"
    SAFETY = "safety"
    OTHER = "other"


class ComplaintPriority(str, Enum):
    """Complaint priority levels"""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class Role(str, Enum):
    """Actor roles for status transitions"""
    ADMIN = "admin"  # Broad authority, may reopen resolved/rejected/closed items
    STAFF = "staff"  # Front-line triage along the happy path
    USER = "user"    # Reporter, observe only


class ConnectionState(str, Enum):
    """Live channel connectivity"""
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


class ChangeKind(str, Enum):
    """Normalized change notification family"""
    CREATED = "created"
    UPDATED = "updated"
    DELETED = "deleted"


# Wire tags seen from the different producers, per change family
CHANGE_TAGS = {
    "complaint_created": ChangeKind.CREATED,
    "NEW_COMPLAINT": ChangeKind.CREATED,
    "complaint_updated": ChangeKind.UPDATED,
    "UPDATED_COMPLAINT": ChangeKind.UPDATED,
    "complaint_deleted": ChangeKind.DELETED,
    "DELETED_COMPLAINT": ChangeKind.DELETED,
}

# Server control frames, acknowledged and otherwise ignored
CONTROL_TAGS = frozenset({"connection", "subscribed", "pong"})
