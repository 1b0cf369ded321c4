"""Analysis model health check: ping the API before starting a session."""

import asyncio
import logging

from aethel.providers.base import TextAnalyzer

logger = logging.getLogger(__name__)

_PING_PROMPT = "Reply with the word OK only."
_TIMEOUT_SEC = 15.0


async def ping_analyzer(analyzer: TextAnalyzer) -> tuple[bool, str]:
    """Send a minimal prompt to the analyzer.

    Returns:
        (ok, error_message). error_message is "" when ok is True.
    """
    try:
        await asyncio.wait_for(analyzer.analyze(_PING_PROMPT), timeout=_TIMEOUT_SEC)
        return True, ""
    except Exception as exc:
        logger.debug("Health check failed for %s: %s", analyzer.model_string(), exc)
        return False, str(exc) or type(exc).__name__
