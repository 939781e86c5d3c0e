# accounts/authz.py
"""
Authorization utilities for the Dapur ledger.

Provides:
- ActorContext: Immutable context for the current request
- resolve_actor: Extract actor context from request
- system_actor: The actor automatic journals run as
- require: Check permissions and raise if not granted

Permissions are Django model permissions, e.g. "accounting.add_account"
or the custom "accounting.post_journalentry". Superusers and the
system actor are implicitly allowed everything.
"""

from dataclasses import dataclass
from typing import FrozenSet, Optional

from django.core.exceptions import PermissionDenied
from rest_framework.exceptions import NotAuthenticated


SYSTEM_ACTOR_NAME = "System"


@dataclass(frozen=True)
class ActorContext:
    """
    Immutable context for the current actor.

    This is passed to commands and policies to provide context
    about who is performing an action.

    Attributes:
        user: The authenticated user (None for the system actor)
        display_name: Name stamped on entries (created_by_name, posted_by_name)
        perms: Set of permission codes the user has
        is_system: True for automatic journals
    """
    user: Optional[object]
    display_name: str
    perms: FrozenSet[str]
    is_system: bool = False

    def has(self, code: str) -> bool:
        """
        Check if actor has a specific permission.

        Order of checks:
        1. system actor or superuser: implicit allow
        2. everyone else: only code in perms
        """
        if self.is_system:
            return True
        if self.user is not None and getattr(self.user, "is_superuser", False):
            return True
        return code in self.perms

    @property
    def user_id(self) -> Optional[int]:
        return getattr(self.user, "pk", None)

    @property
    def is_authenticated(self) -> bool:
        """Mirror Django's user.is_authenticated for compatibility."""
        return self.is_system or bool(getattr(self.user, "is_authenticated", False))


def _display_name(user) -> str:
    full_name = user.get_full_name() if hasattr(user, "get_full_name") else ""
    return full_name or user.get_username()


def actor_for_user(user) -> ActorContext:
    """Build an ActorContext for a user, loading permissions fresh."""
    return ActorContext(
        user=user,
        display_name=_display_name(user),
        perms=frozenset(user.get_all_permissions()),
    )


def resolve_actor(request) -> ActorContext:
    """
    Extract ActorContext from the current request.

    This is called at the start of every view that needs authorization.
    Permissions are loaded FRESH from the database each request, so
    permission changes take effect immediately.

    Raises:
        NotAuthenticated: If user is not authenticated
    """
    user = getattr(request, "user", None)

    if not user or not user.is_authenticated:
        raise NotAuthenticated("Authentication required.")

    return actor_for_user(user)


def system_actor() -> ActorContext:
    """Actor used by automatic journals and maintenance tasks."""
    return ActorContext(
        user=None,
        display_name=SYSTEM_ACTOR_NAME,
        perms=frozenset(),
        is_system=True,
    )


def require(actor: ActorContext, code: str) -> None:
    """
    Require that the actor has a specific permission.

    Raises PermissionDenied if the permission is not granted.

    Example:
        require(actor, "accounting.post_journalentry")
        # If we get here, permission is granted
    """
    if not actor.has(code):
        raise PermissionDenied(f"Permission denied: {code}")
