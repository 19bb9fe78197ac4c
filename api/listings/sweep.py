"""Expiry sweep endpoint (called via Vercel cron)."""

import asyncio

from src.services.expiry_sweep import run_expiry_sweep
from src.utils.http import error_response, json_response
from src.utils.logging import correlation_context
from src.utils.logging_config import LoggingConfig

LoggingConfig.setup_logging()


def handler(request):
    """Complete active listings whose sale has ended."""
    with correlation_context():
        try:
            completed = asyncio.run(run_expiry_sweep())
            return json_response(200, {"ok": True, "completed": completed})
        except Exception as e:
            return error_response(e)
