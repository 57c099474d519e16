"""
asset_tracker

Asset tracker backend: authentication and authorization core.

Entry points: `asset_tracker.api.app.create_app` (ASGI app factory) and
`asset_tracker.auth.pipeline.Authenticator` (transport-independent auth pipeline).
"""

__all__ = ["__version__"]

__version__ = "0.3.0"
