"""Entrypoint for the data claims HTTP server."""

from __future__ import annotations

import sys
from pathlib import Path

if __package__ in (None, ""):
    sys.path.insert(0, str(Path(__file__).resolve().parents[1]))  # pragma: no cover

from data_claims import __version__
from data_claims.config import load_settings
from data_claims.logging_utils import configure_logging, get_logger


def run_entrypoint() -> None:
    """Run the HTTP server with uvicorn."""
    settings = load_settings()
    configure_logging()
    from data_claims.transport.http_server import create_http_app

    try:
        import uvicorn
    except ImportError as exc:
        raise RuntimeError("uvicorn is required to run the HTTP server") from exc

    logger = get_logger(__name__)
    logger.info("Starting data claims service v%s", __version__)
    if not settings.storage.mongodb_uri:
        logger.warning("MONGODB_URI is not set; store-backed endpoints will fail")

    app = create_http_app()
    uvicorn.run(
        app,
        host=settings.server.host,
        port=settings.server.port,
        ws="none",
        log_config=None,
    )


if __name__ == "__main__":
    run_entrypoint()
