"""Session guards for the JSON routes.

The external identity bridge is expected to have stored ``member_id``,
``name`` and ``roles`` in the Flask session; this module only reads them.
"""
from __future__ import annotations

from functools import wraps
from typing import Iterable, Tuple

from flask import jsonify, session

from ..core.enums import Role
from ..core.exceptions import AuthorizationError


def current_member_id() -> str | None:
    value = session.get("member_id")
    return str(value) if value else None


def current_roles() -> Tuple[Role, ...]:
    raw = session.get("roles")
    # Sessions created before roles existed carry no list: treat as member.
    if not raw:
        return (Role.MEMBER,)
    if isinstance(raw, str):
        raw = raw.split(",")
    roles = []
    for value in raw:
        try:
            roles.append(Role(str(value).strip()))
        except ValueError:
            continue
    return tuple(roles) or (Role.MEMBER,)


def has_any_role(roles: Iterable[Role]) -> bool:
    wanted = set(roles)
    return any(r in wanted for r in current_roles())


def is_staff() -> bool:
    return has_any_role((Role.STAFF, Role.ADMIN))


def can_view_member(member_id: str) -> bool:
    return current_member_id() == member_id or is_staff()


def ensure_can_view(member_id: str) -> None:
    """Members read their own records; staff and admins read anyone's."""
    if not can_view_member(member_id):
        raise AuthorizationError("Forbidden")


def login_required(view):
    @wraps(view)
    def wrapper(*args, **kwargs):
        if not current_member_id():
            return jsonify({"success": False, "message": "Authentication required"}), 401
        return view(*args, **kwargs)

    return wrapper


def roles_required(*roles: Role):
    def decorator(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            if not current_member_id():
                return jsonify({"success": False, "message": "Authentication required"}), 401
            if not has_any_role(roles):
                return jsonify({"success": False, "message": "Forbidden"}), 403
            return view(*args, **kwargs)

        return wrapper

    return decorator


staff_required = roles_required(Role.STAFF, Role.ADMIN)
admin_required = roles_required(Role.ADMIN)
