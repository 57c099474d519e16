"""
asset_tracker.auth

Authentication/authorization core.

Responsibilities:
- Classify bearer tokens into trust schemes (demo, Firebase, local JWT).
- Verify them with scheme-specific rules and provision local principals.
- Evaluate role/permission guards and record security audit events.
- Expose FastAPI dependencies for route handlers.
"""


# --- Module Notes -----------------------------------------------------------
# Only `auth.deps` imports FastAPI; other modules take plain values and store protocols.
