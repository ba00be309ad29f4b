"""Read-only projections over a complaint snapshot"""
from collections import Counter
from typing import List, Optional

from ..domain.enums import ComplaintCategory, ComplaintPriority, ComplaintStatus
from ..domain.models import Complaint, ComplaintSnapshot, SnapshotSummary


def filter_complaints(
    snapshot: ComplaintSnapshot,
    status: Optional[ComplaintStatus] = None,
    category: Optional[ComplaintCategory] = None,
    priority: Optional[ComplaintPriority] = None,
    reporter_email: Optional[str] = None,
    search: Optional[str] = None
) -> List[Complaint]:
    """Filter a snapshot, keeping snapshot order"""
    needle = search.strip().lower() if search else ""
    email = reporter_email.strip().lower() if reporter_email else ""

    results = []
    for complaint in snapshot.items:
        if status and complaint.status != status:
            continue
        if category and complaint.category != category:
            continue
        if priority and complaint.priority != priority:
            continue
        if email:
            reporter = complaint.reporter
            if reporter is None or (reporter.email or "").lower() != email:
                continue
        if needle and needle not in complaint.title.lower() and needle not in complaint.description.lower():
            continue
        results.append(complaint)
    return results


def summarize(snapshot: ComplaintSnapshot) -> SnapshotSummary:
    """Counts per status, priority and category (every enum value present)"""
    by_status = Counter(c.status.value for c in snapshot.items)
    by_priority = Counter(c.priority.value for c in snapshot.items)
    by_category = Counter(c.category.value for c in snapshot.items)
    return SnapshotSummary(
        total=len(snapshot),
        by_status={s.value: by_status.get(s.value, 0) for s in ComplaintStatus},
        by_priority={p.value: by_priority.get(p.value, 0) for p in ComplaintPriority},
        by_category={c.value: by_category.get(c.value, 0) for c in ComplaintCategory},
    )
