# backend/formadb/__init__.py
"""
Import ORM models from each app so that:

- Alembic and Base.metadata.create_all() see all tables.
- The package exposes a clear surface.

The actual model classes are kept in formadb/apps/*/models.py.
"""

from .apps.accounts import models as accounts_models          # users / roles / auth
from .apps.training import models as training_models          # formations, sessions, attendance, certificates

__all__ = [
    "accounts_models",
    "training_models",
]
