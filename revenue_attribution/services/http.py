"""JSON-over-HTTP requests with retries"""
import logging
import time
from typing import Any, Dict, Optional

import requests

from revenue_attribution.errors import UpstreamUnavailable

logger = logging.getLogger(__name__)


def get_json(
        url: str,
        params: Optional[Dict[str, Any]] = None,
        timeout: float = 30.0,
        retries: int = 3,
        backoff: float = 1.0
) -> Any:
    """
    GET a JSON document, retrying failed or non-success responses.

    Raises:
        UpstreamUnavailable: If every attempt fails
    """
    attempts = max(retries, 1)
    for attempt in range(attempts):
        try:
            response = requests.get(url, params=params, timeout=timeout)
            response.raise_for_status()
            return response.json()
        except requests.RequestException as e:
            if attempt == attempts - 1:  # Last attempt
                logger.error(f"Request to {url} failed after {attempts} attempts: {e}")
                raise UpstreamUnavailable(f"Request to {url} failed: {e}") from e
            logger.warning(f"Retrying request to {url} after error: {e}")
            time.sleep(backoff * (attempt + 1))
