"""
asset_tracker.db.repositories

Row-level queries used by the store adapters in `db.stores`.
"""

from asset_tracker.db.repositories.audit import AuditRepo
from asset_tracker.db.repositories.principals import PrincipalRepo

__all__ = ["AuditRepo", "PrincipalRepo"]
