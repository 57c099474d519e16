"""
asset_tracker.db

Persistence for principals and the audit trail (SQLAlchemy async).

The auth core never imports this package; it talks to `db.stores` through the
`PrincipalStore` / `AuditStore` protocols wired up in `api.app`.
"""
