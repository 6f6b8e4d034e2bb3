"""
hrms_auth.auth.permissions

Permission evaluator (pure, side-effect free).

Responsibilities:
- Decide allow/deny for (identity, action, optional resource).
- Apply the offboarding restriction before any role logic.
- Default-deny every action the table does not name.
"""

from __future__ import annotations

import enum
from collections.abc import Mapping
from typing import Any

from hrms_auth.auth.models import PRIVILEGED_ROLES, Identity, Role


class Action(enum.StrEnum):
    view_employee_list = "view:employee_list"
    create_employee = "create:employee"
    delete_employee = "delete:employee"
    view_all_attendance = "view:all_attendance"
    approve_timesheet = "approve:timesheet"
    approve_manual_attendance = "approve:manual_attendance"
    approve_leave = "approve:leave"
    reject_leave = "reject:leave"
    manage_offboarding = "manage:offboarding"
    view_all_offboarding = "view:all_offboarding"
    start_offboarding = "start:offboarding"
    complete_offboarding = "complete:offboarding"
    view_employee_details = "view:employee_details"
    edit_employee_core = "edit:employee_core"
    edit_employee_basic = "edit:employee_basic"
    create_leave = "create:leave"
    cancel_own_leave = "cancel:own_leave"
    view_offboarding = "view:offboarding"
    upload_offboarding_documents = "upload:offboarding_documents"
    complete_offboarding_steps = "complete:offboarding_steps"
    manage_assets = "manage:assets"


# The only actions an identity with offboarding in progress may attempt.
OFFBOARDING_ALLOWED: frozenset[str] = frozenset(
    {
        Action.view_employee_details,
        Action.edit_employee_basic,
        Action.create_leave,
        Action.cancel_own_leave,
        Action.view_offboarding,
        Action.upload_offboarding_documents,
        Action.complete_offboarding_steps,
    }
)

PRIVILEGED_ONLY: frozenset[str] = frozenset(
    {
        Action.view_employee_list,
        Action.create_employee,
        Action.delete_employee,
        Action.view_all_attendance,
        Action.approve_timesheet,
        Action.approve_manual_attendance,
        Action.approve_leave,
        Action.reject_leave,
        Action.manage_offboarding,
        Action.view_all_offboarding,
        Action.start_offboarding,
        Action.complete_offboarding,
        Action.edit_employee_core,
    }
)

# Owner match on `resource["id"]` or `resource["employeeId"]`.
OWNER_OR_PRIVILEGED: frozenset[str] = frozenset(
    {
        Action.view_employee_details,
        Action.edit_employee_basic,
    }
)

# Owner match on `resource["employeeId"]` only.
EMPLOYEE_OWNER_OR_PRIVILEGED: frozenset[str] = frozenset(
    {
        Action.view_offboarding,
        Action.upload_offboarding_documents,
        Action.complete_offboarding_steps,
    }
)

ANY_AUTHENTICATED: frozenset[str] = frozenset({Action.create_leave, Action.cancel_own_leave})

ASSET_MANAGERS: frozenset[Role] = PRIVILEGED_ROLES | {Role.it_admin}


def can(
    identity: Identity | None,
    action: str,
    resource: Mapping[str, Any] | None = None,
) -> bool:
    if identity is None:
        return False

    action = str(action)

    # Offboarding is a hard override evaluated before grants and roles.
    if identity.offboarding_in_progress and action not in OFFBOARDING_ALLOWED:
        return False

    if action in identity.permissions:
        return True

    privileged = identity.role in PRIVILEGED_ROLES

    if action in PRIVILEGED_ONLY:
        return privileged
    if action in OWNER_OR_PRIVILEGED:
        return privileged or _owns(identity, resource, keys=("id", "employeeId", "employee_id"))
    if action in EMPLOYEE_OWNER_OR_PRIVILEGED:
        return privileged or _owns(identity, resource, keys=("employeeId", "employee_id"))
    if action in ANY_AUTHENTICATED:
        return True
    if action == Action.manage_assets:
        return identity.role in ASSET_MANAGERS
    return False


def _owns(
    identity: Identity,
    resource: Mapping[str, Any] | None,
    *,
    keys: tuple[str, ...],
) -> bool:
    if not resource or not identity.employee_id:
        return False
    return any(
        resource.get(k) is not None and str(resource.get(k)) == identity.employee_id for k in keys
    )


def can_manage_leaves(identity: Identity | None) -> bool:
    return can(identity, Action.approve_leave) or can(identity, Action.reject_leave)


def can_manage_offboarding(identity: Identity | None) -> bool:
    return can(identity, Action.manage_offboarding) or can(identity, Action.view_all_offboarding)


def is_in_offboarding(identity: Identity | None) -> bool:
    return identity is not None and identity.offboarding_in_progress


def can_access_offboarding(identity: Identity | None, employee_id: str | None = None) -> bool:
    if identity is None:
        return False
    if identity.is_privileged:
        return True
    if identity.role is Role.employee:
        if not employee_id:
            return identity.offboarding_in_progress
        return str(employee_id) == identity.employee_id
    return False


def display_status(identity: Identity | None) -> str:
    if identity is None:
        return "Unknown"
    if identity.offboarding_in_progress:
        return "Offboarding"
    return identity.employee_status or "Active"


# --- Module Notes -----------------------------------------------------------
# Role checks live here only. Call sites ask `can(...)` instead of comparing role strings.
