"""
asset_tracker.auth.demo

Development-only demo tokens.

The two sentinel tokens resolve to fixed synthetic principals without touching any
store. The classifier only emits the demo scheme when `Settings.demo_mode` is on,
which is never the case with env=prod.
"""

from __future__ import annotations

import uuid

from asset_tracker.auth.classifier import DEMO_ADMIN_TOKEN, DEMO_USER_TOKEN
from asset_tracker.auth.models import ALL_PERMISSIONS, DEFAULT_PERMISSIONS, Principal, Role

# Stable ids so audit records for demo sessions group together.
DEMO_ADMIN_ID = uuid.UUID("00000000-0000-4000-8000-00000000d001")
DEMO_USER_ID = uuid.UUID("00000000-0000-4000-8000-00000000d002")

_DEMO_PRINCIPALS: dict[str, Principal] = {
    DEMO_ADMIN_TOKEN: Principal(
        id=DEMO_ADMIN_ID,
        external_id="demo-admin",
        email="admin@demo.local",
        display_name="Demo Admin",
        role=Role.admin.value,
        permissions=ALL_PERMISSIONS,
    ),
    DEMO_USER_TOKEN: Principal(
        id=DEMO_USER_ID,
        external_id="demo-user",
        email="user@demo.local",
        display_name="Demo User",
        role=Role.user.value,
        permissions=DEFAULT_PERMISSIONS,
    ),
}


def resolve_demo_principal(raw: str) -> Principal | None:
    return _DEMO_PRINCIPALS.get(raw)
