# backend/orgdb/__init__.py
"""
Import ORM models from each app so that Alembic and
Base.metadata.create_all() see all tables.

The model classes live in orgdb/apps/*/models.py.
"""

from .apps.accounts import models as accounts_models    # roles / permissions / users
from .apps.zones import models as zones_models          # zones + sectors
from .apps.groups import models as groups_models        # groups
from .apps.work import models as work_models            # works + weekly tasks
from .apps.audit import models as audit_models          # audit trail

__all__ = [
    "accounts_models",
    "zones_models",
    "groups_models",
    "work_models",
    "audit_models",
]
