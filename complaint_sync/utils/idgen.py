"""ID Generation Utilities"""
import uuid
from datetime import datetime, timezone
from typing import Optional


def generate_id(prefix: Optional[str] = None, length: int = 12) -> str:
    """
    Random hex id, optionally prefixed

    Examples:
        >>> generate_id('SUB')
        'SUB-a1b2c3d4e5f6'
    """
    unique_part = uuid.uuid4().hex[:length]
    return f"{prefix}-{unique_part}" if prefix else unique_part


def generate_subscription_id() -> str:
    """Snapshot/status listener registration id"""
    return generate_id("SUB")


def generate_correlation_id() -> str:
    """Request/job correlation id: COR-<utc timestamp>-<random>"""
    timestamp = datetime.now(timezone.utc).strftime("%Y%m%d%H%M%S")
    return generate_id(f"COR-{timestamp}", length=8)
