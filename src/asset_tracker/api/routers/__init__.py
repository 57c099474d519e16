"""
asset_tracker.api.routers

HTTP routers (health probes, dev token minting, user profile/administration).
"""
