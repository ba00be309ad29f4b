"""Status Transition Engine - Role-scoped complaint status FSM"""
from typing import FrozenSet, List, Optional, Union

from ..domain.enums import ComplaintStatus, Role
from ..domain.errors import NoOpTransitionError, PermissionDeniedError, ValidationError
from .permission_table import DEFAULT_PERMISSION_TABLE, TransitionPermissionTable
from ..utils.logger import get_logger

logger = get_logger(__name__)

RoleLike = Union[Role, str, None]
StatusLike = Union[ComplaintStatus, str]


class StatusTransitionEngine:
    """
    Gatekeeper for status changes.

    Stateless lookup over an immutable permission table:
    - admin: broad authority, including reopening resolved/rejected/closed
    - staff: forward along the happy path, closed is terminal
    - user: observe only

    The write path must consult validate_transition() before issuing a
    remote status update. The server enforces the same table.
    """

    def __init__(self, table: Optional[TransitionPermissionTable] = None):
        self._table = table or DEFAULT_PERMISSION_TABLE

    @property
    def table(self) -> TransitionPermissionTable:
        return self._table

    @staticmethod
    def _coerce_role(role: RoleLike) -> Optional[Role]:
        """Unknown or missing roles carry no transition rights"""
        if isinstance(role, Role):
            return role
        if not role:
            return None
        try:
            return Role(str(role).strip().lower())
        except ValueError:
            return None

    @staticmethod
    def _coerce_status(status: StatusLike) -> ComplaintStatus:
        if isinstance(status, ComplaintStatus):
            return status
        try:
            return ComplaintStatus(str(status).strip().lower())
        except ValueError:
            raise ValidationError(
                f"Unknown complaint status: {status}",
                details={"status": str(status)}
            )

    def allowed_next_states(self, role: RoleLike, current_status: StatusLike) -> FrozenSet[ComplaintStatus]:
        """
        Statuses the actor may move a complaint to.

        An empty set means no edit affordance should be offered and any
        submission will be rejected.
        """
        resolved_role = self._coerce_role(role)
        status = self._coerce_status(current_status)
        if resolved_role is None:
            return frozenset()
        return self._table.next_states(resolved_role, status)

    def ordered_next_states(self, role: RoleLike, current_status: StatusLike) -> List[ComplaintStatus]:
        """allowed_next_states in canonical workflow order (for menus)"""
        allowed = self.allowed_next_states(role, current_status)
        return [s for s in ComplaintStatus if s in allowed]

    def can_edit(self, role: RoleLike, current_status: StatusLike) -> bool:
        """Whether any transition is available"""
        return bool(self.allowed_next_states(role, current_status))

    def validate_transition(
        self,
        role: RoleLike,
        current_status: StatusLike,
        proposed_status: StatusLike
    ) -> ComplaintStatus:
        """
        Validate a proposed transition before it is submitted.

        Returns:
            The proposed status as a ComplaintStatus

        Raises:
            PermissionDeniedError: Actor has no rights from the current
                status, or the proposed status is not reachable
            NoOpTransitionError: Proposed status equals the current one
            ValidationError: Unknown status value
        """
        current = self._coerce_status(current_status)
        proposed = self._coerce_status(proposed_status)
        allowed = self.allowed_next_states(role, current)
        role_value = getattr(role, "value", role)
        details = {
            "role": role_value,
            "current_status": current.value,
            "proposed_status": proposed.value,
        }

        if not allowed:
            logger.info(
                f"Transition denied: role {role_value} cannot change '{current.value}'",
                extra={"role": role_value, "status": current.value}
            )
            raise PermissionDeniedError(
                f"Role '{role_value}' cannot change a complaint in status '{current.value}'",
                details=details
            )

        if proposed == current:
            raise NoOpTransitionError(
                f"Complaint is already '{current.value}'",
                details=details
            )

        if proposed not in allowed:
            logger.info(
                f"Transition denied: {current.value} -> {proposed.value} for role {role_value}",
                extra={"role": role_value, "status": current.value}
            )
            raise PermissionDeniedError(
                f"Role '{role_value}' may not move a complaint from "
                f"'{current.value}' to '{proposed.value}'",
                details={**details, "allowed": [s.value for s in self.ordered_next_states(role, current)]}
            )

        return proposed
