"""
asset_tracker.api

HTTP surface of the auth core: app factory, error envelope and routers.

Handlers validate input, declare auth guards as dependencies and call the stores;
they never inspect tokens themselves.
"""
