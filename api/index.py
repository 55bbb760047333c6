"""Serverless entry point: exposes the WSGI ``app``."""

import logging

from app import create_app

try:
    app = create_app()
except Exception:
    logging.getLogger(__name__).exception("Study aid app failed to start")
    raise
