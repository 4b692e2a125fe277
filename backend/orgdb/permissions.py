"""
Capability-based authorization.

Every structure endpoint declares the capability it needs; the policy below
evaluates it against the capability set granted to the caller's role.
"""

from __future__ import annotations

import logging
from typing import Callable, Union

from fastapi import Depends, HTTPException, status

from orgdb.apps.accounts import models as account_models
from orgdb.apps.accounts.models import Capability

from .security import get_current_active_user

logger = logging.getLogger(__name__)


def _normalise(capability: Union[Capability, str]) -> Capability:
    if isinstance(capability, Capability):
        return capability
    try:
        return Capability(capability)
    except ValueError:
        raise ValueError(f"Unknown capability {capability!r} passed to require_capability()")


def has_capability(user: account_models.User, capability: Union[Capability, str]) -> bool:
    """
    Return True if the user may exercise the capability.

    Superusers hold every capability. Everyone else holds exactly the
    capabilities granted to their role.
    """
    wanted = _normalise(capability)
    if getattr(user, "is_superuser", False):
        return True
    return wanted in user.capabilities


def require_capability(
    capability: Union[Capability, str],
) -> Callable[[account_models.User], account_models.User]:
    """
    FastAPI dependency factory that blocks callers missing a capability.

    Usage:
        @router.post(
            "/create",
            dependencies=[Depends(require_capability(Capability.CAN_CREATE_WORK))],
        )

    Unknown capability names fail at import time, not per request.
    """
    wanted = _normalise(capability)

    def dependency(
        current_user: account_models.User = Depends(get_current_active_user),
    ) -> account_models.User:
        if has_capability(current_user, wanted):
            return current_user

        logger.warning(
            "capability denied",
            extra={"user_id": getattr(current_user, "id", None), "capability": wanted.value},
        )
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Missing capability '{wanted.value}' for this operation.",
        )

    dependency.capability = wanted  # type: ignore[attr-defined]
    return dependency
