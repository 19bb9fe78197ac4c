"""Free listing period settings endpoint."""

import asyncio
from datetime import date

from src.services.free_period_policy import get_policy_source, is_free_period_running
from src.utils.http import error_response, json_response, parse_body
from src.utils.logging import correlation_context
from src.utils.logging_config import LoggingConfig

LoggingConfig.setup_logging()


def _policy_body(policy) -> dict:
    return {
        "ok": True,
        "policy": policy.model_dump(mode="json"),
        "provisional": policy.is_provisional,
        "running_today": is_free_period_running(policy, date.today()),
    }


def handler(request):
    """GET reads the current free period; POST saves one."""
    method = (request.get("method") or "GET").upper()
    source = get_policy_source()

    with correlation_context():
        try:
            if method == "GET":
                return json_response(200, _policy_body(asyncio.run(source.load())))

            body = parse_body(request)
            policy = asyncio.run(source.save(
                bool(body.get("is_active")),
                body.get("free_listing_start"),
                body.get("free_listing_end"),
            ))
            return json_response(200, _policy_body(policy))
        except Exception as e:
            return error_response(e)
