import logging
from typing import Iterable

from django.contrib.auth import get_user_model
from django.core.exceptions import PermissionDenied

# Canonical role names
ROLE_USER = "user"
ROLE_ADMIN = "admin"

logger = logging.getLogger(__name__)


def _fetch_user_from_db(user):
    """Fetch a fresh copy of the user with only the fields role checks need.

    Returns None for anonymous users and users that no longer exist.
    """
    if not getattr(user, "is_authenticated", False):
        return None
    User = get_user_model()
    return User.objects.only("id", "role", "is_superuser").filter(pk=getattr(user, "pk", None)).first()


def is_admin(user) -> bool:
    """Admin check verified against the database, so a demoted token loses access immediately."""
    db_user = _fetch_user_from_db(user)
    if not db_user:
        return False
    return bool(db_user.is_superuser or db_user.role == ROLE_ADMIN)


def has_role(user, role: str) -> bool:
    if role == ROLE_ADMIN:
        return is_admin(user)
    db_user = _fetch_user_from_db(user)
    return getattr(db_user, "role", None) == role if db_user else False


def has_any_role(user, roles: Iterable[str]) -> bool:
    return any(has_role(user, r) for r in roles)


def require_role(user, roles: Iterable[str]):
    """Raise PermissionDenied unless the user has one of the roles."""
    roles = list(roles)
    if not has_any_role(user, roles):
        logger.warning(
            "RBAC denial: user_id=%s required=%s",
            getattr(user, "id", None),
            roles,
        )
        raise PermissionDenied("Insufficient role to access this resource.")


def require_admin(user):
    require_role(user, [ROLE_ADMIN])
