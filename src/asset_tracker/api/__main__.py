"""
asset_tracker.api.__main__

`python -m asset_tracker.api` / `asset-tracker-api` entrypoint.

Refuses to start (exit status 1) when globally required configuration is missing.
A scheme whose own configuration is missing does not block startup; it is reported
as unavailable by `/readyz` and rejects its tokens.
"""

from __future__ import annotations

import sys

import uvicorn

from asset_tracker.api.app import create_app
from asset_tracker.observability.logging import configure_logging, get_logger
from asset_tracker.settings import Settings, get_settings


def _boot_problems(settings: Settings) -> list[str]:
    missing = settings.missing_boot_requirements()
    if missing:
        configure_logging(service_name=settings.service_name, level=settings.log_level)
        get_logger(__name__).error("boot.missing_configuration", missing=missing, env=settings.env)
    return missing


def main() -> None:
    settings = get_settings()
    if _boot_problems(settings):
        sys.exit(1)

    uvicorn.run(
        create_app(settings=settings),
        host=settings.api_host,
        port=settings.api_port,
        log_config=None,
        # `RequestContextMiddleware` writes the access log.
        access_log=False,
        proxy_headers=True,
        forwarded_allow_ips=settings.forwarded_allow_ips,
    )


if __name__ == "__main__":
    main()
