"""Transition Permission Table - role -> current status -> legal next statuses"""
from types import MappingProxyType
from typing import Dict, FrozenSet, Iterable, Mapping, Tuple

from ..domain.enums import ComplaintStatus, Role
from ..domain.errors import PermissionTableError


S = ComplaintStatus

DEFAULT_TRANSITIONS: Dict[Role, Dict[ComplaintStatus, Tuple[ComplaintStatus, ...]]] = {
    Role.ADMIN: {
        S.PENDING: (S.IN_PROGRESS, S.RESOLVED, S.REJECTED, S.CLOSED),
        S.IN_PROGRESS: (S.PENDING, S.RESOLVED, S.REJECTED, S.CLOSED),
        S.RESOLVED: (S.PENDING, S.IN_PROGRESS, S.CLOSED),
        S.REJECTED: (S.PENDING, S.IN_PROGRESS, S.CLOSED),
        S.CLOSED: (S.PENDING, S.IN_PROGRESS, S.RESOLVED),
    },
    Role.STAFF: {
        S.PENDING: (S.IN_PROGRESS, S.RESOLVED, S.REJECTED),
        S.IN_PROGRESS: (S.PENDING, S.RESOLVED, S.REJECTED),
        S.RESOLVED: (S.CLOSED,),
        S.REJECTED: (S.PENDING,),
        S.CLOSED: (),
    },
    Role.USER: {
        S.PENDING: (),
        S.IN_PROGRESS: (),
        S.RESOLVED: (),
        S.REJECTED: (),
        S.CLOSED: (),
    },
}


class TransitionPermissionTable:
    """
    Immutable role x status permission matrix.

    Validated on construction: every role/status pair must be present,
    targets must be known statuses and no status may lead to itself.
    Any gap raises PermissionTableError, so a broken table fails at
    startup instead of silently denying (or allowing) at runtime.
    """

    def __init__(self, transitions: Mapping[str, Mapping[str, Iterable[str]]]):
        self._matrix = self._build(transitions)

    @staticmethod
    def _build(
        transitions: Mapping[str, Mapping[str, Iterable[str]]]
    ) -> Mapping[Role, Mapping[ComplaintStatus, FrozenSet[ComplaintStatus]]]:
        problems = []
        matrix: Dict[Role, Mapping[ComplaintStatus, FrozenSet[ComplaintStatus]]] = {}

        unknown_roles = set(str(getattr(r, "value", r)) for r in transitions) - {r.value for r in Role}
        if unknown_roles:
            problems.append(f"unknown roles: {sorted(unknown_roles)}")

        by_role = {str(getattr(r, "value", r)): row for r, row in transitions.items()}
        for role in Role:
            row = by_role.get(role.value)
            if row is None:
                problems.append(f"missing role '{role.value}'")
                continue

            by_status = {str(getattr(s, "value", s)): targets for s, targets in row.items()}
            unknown_statuses = set(by_status) - {s.value for s in ComplaintStatus}
            if unknown_statuses:
                problems.append(f"{role.value}: unknown statuses {sorted(unknown_statuses)}")

            role_row: Dict[ComplaintStatus, FrozenSet[ComplaintStatus]] = {}
            for status in ComplaintStatus:
                if status.value not in by_status:
                    problems.append(f"{role.value}: missing entry for '{status.value}'")
                    continue
                targets = set()
                for target in by_status[status.value]:
                    try:
                        targets.add(ComplaintStatus(getattr(target, "value", target)))
                    except ValueError:
                        problems.append(f"{role.value}.{status.value}: unknown target '{target}'")
                if status in targets:
                    problems.append(f"{role.value}.{status.value}: self-transition")
                role_row[status] = frozenset(targets)
            matrix[role] = MappingProxyType(role_row)

        if problems:
            raise PermissionTableError(
                "Invalid transition permission table",
                details={"problems": problems}
            )
        return MappingProxyType(matrix)

    def next_states(self, role: Role, status: ComplaintStatus) -> FrozenSet[ComplaintStatus]:
        """Legal next statuses for a role from a status"""
        return self._matrix[role][status]

    def as_dict(self) -> Dict[str, Dict[str, list]]:
        """Plain-data view, targets in canonical status order"""
        order = list(ComplaintStatus)
        return {
            role.value: {
                status.value: [t.value for t in sorted(targets, key=order.index)]
                for status, targets in row.items()
            }
            for role, row in self._matrix.items()
        }


DEFAULT_PERMISSION_TABLE = TransitionPermissionTable(DEFAULT_TRANSITIONS)
