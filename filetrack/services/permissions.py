"""
Authorization policy for file and forward transitions.

``can_transition`` is a pure predicate: it never touches the database and
never raises for expected inputs. Callers that need an exception use
``ensure_allowed``.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from ..models.models import File, Forward
from .errors import AuthorizationError


class PolicyAction(str, Enum):
    CREATE_FILE = "create_file"
    UPDATE_FILE = "update_file"
    SET_FILE_STATUS = "set_file_status"
    DELETE_FILE = "delete_file"
    RELEASE_FILE = "release_file"
    FORWARD_FILE = "forward_file"
    APPROVE_FORWARD = "approve_forward"
    REJECT_FORWARD = "reject_forward"
    RECEIVE_FORWARD = "receive_forward"
    COMPLETE_FORWARD = "complete_forward"
    UPDATE_FORWARD = "update_forward"
    DELETE_FORWARD = "delete_forward"
    VIEW_DEPARTMENT = "view_department"
    ADD_MOVEMENT = "add_movement"
    CORRECT_MOVEMENT = "correct_movement"
    DELETE_MOVEMENT = "delete_movement"
    MANAGE_USERS = "manage_users"


# Human wording used in deny reasons
_VERBS = {
    PolicyAction.CREATE_FILE: "create files",
    PolicyAction.UPDATE_FILE: "update this file",
    PolicyAction.SET_FILE_STATUS: "change file status",
    PolicyAction.DELETE_FILE: "delete files",
    PolicyAction.RELEASE_FILE: "release files",
    PolicyAction.FORWARD_FILE: "forward this file",
    PolicyAction.APPROVE_FORWARD: "approve forwards",
    PolicyAction.REJECT_FORWARD: "reject forwards",
    PolicyAction.RECEIVE_FORWARD: "receive this file",
    PolicyAction.COMPLETE_FORWARD: "complete this file",
    PolicyAction.UPDATE_FORWARD: "update this forward",
    PolicyAction.DELETE_FORWARD: "delete this forward",
    PolicyAction.VIEW_DEPARTMENT: "view forwards",
    PolicyAction.ADD_MOVEMENT: "add movements",
    PolicyAction.CORRECT_MOVEMENT: "correct movements",
    PolicyAction.DELETE_MOVEMENT: "delete movements",
    PolicyAction.MANAGE_USERS: "manage users",
}

# Anyone authenticated
_OPEN_ACTIONS = {PolicyAction.CREATE_FILE, PolicyAction.ADD_MOVEMENT}
# Only the designated distributee, whatever their role
_DISTRIBUTEE_ACTIONS = {PolicyAction.RECEIVE_FORWARD, PolicyAction.COMPLETE_FORWARD}


@dataclass(frozen=True)
class Decision:
    allowed: bool
    reason: Optional[str] = None
    kind: Optional[str] = None  # role|department|ownership when denied

    def __bool__(self) -> bool:
        return self.allowed


ALLOW = Decision(True)


def _deny_role(actor, action: PolicyAction) -> Decision:
    return Decision(False, f"User role {actor.role} is not authorized to {_VERBS[action]}", "role")


def _deny_department(action: PolicyAction) -> Decision:
    return Decision(False, f"Not authorized to {_VERBS[action]} for this department", "department")


def _deny_ownership(action: PolicyAction) -> Decision:
    return Decision(False, f"You are not authorized to {_VERBS[action]}", "ownership")


def entity_department(entity: Any) -> Optional[str]:
    """Department an entity belongs to for admin scoping."""
    if isinstance(entity, Forward):
        return entity.recipient_department
    if isinstance(entity, File):
        return entity.department
    if isinstance(entity, str):
        return entity
    return getattr(entity, "department", None)


def _owns(actor, entity: Any, action: PolicyAction) -> bool:
    """Ownership rules shared by users and admins acting outside their department."""
    name = actor.name
    if action == PolicyAction.FORWARD_FILE and isinstance(entity, File):
        return entity.current_holder == name
    if action == PolicyAction.UPDATE_FILE and isinstance(entity, File):
        return name in (entity.current_holder, entity.created_by)
    if action in (PolicyAction.UPDATE_FORWARD, PolicyAction.DELETE_FORWARD) and isinstance(entity, Forward):
        return entity.sent_by == name
    return False


_OWNER_ACTIONS = {
    PolicyAction.FORWARD_FILE,
    PolicyAction.UPDATE_FILE,
    PolicyAction.UPDATE_FORWARD,
    PolicyAction.DELETE_FORWARD,
}


def can_transition(actor, entity: Any, action: PolicyAction) -> Decision:
    """
    Decide whether ``actor`` may perform ``action`` on ``entity``.

    Precedence: distributee-only actions first (receive/complete belong to
    the named employee regardless of role), then superadmin, then a
    department-matching admin, then ownership rules for plain users.
    """
    action = PolicyAction(action)

    if action in _DISTRIBUTEE_ACTIONS:
        if isinstance(entity, Forward) and entity.distributed_to and entity.distributed_to == actor.name:
            return ALLOW
        return _deny_ownership(action)

    if action in _OPEN_ACTIONS:
        return ALLOW

    role = actor.role
    if role == "superadmin":
        return ALLOW

    if role == "admin":
        dept = entity_department(entity)
        if dept is not None and dept == actor.department:
            return ALLOW
        if action in _OWNER_ACTIONS and _owns(actor, entity, action):
            return ALLOW
        return _deny_department(action)

    if role == "user":
        if action in _OWNER_ACTIONS:
            return ALLOW if _owns(actor, entity, action) else _deny_ownership(action)
        return _deny_role(actor, action)

    return _deny_role(actor, action)


def ensure_allowed(actor, entity: Any, action: PolicyAction) -> None:
    decision = can_transition(actor, entity, action)
    if not decision.allowed:
        raise AuthorizationError(decision.reason, reason_kind=decision.kind)
