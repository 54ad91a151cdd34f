"""
Provider status pages (Atlassian Statuspage summary.json), fetched
synchronously with retries and normalized to {indicator, description}.
"""
import logging
import time
from typing import Any, Dict, Mapping, Optional

import requests

from config import STATUS_RETRIES, STATUS_RETRY_DELAY
from core.registry import STATUS_ENDPOINTS
from core.types import ProviderName

logger = logging.getLogger(__name__)

UNKNOWN = {"indicator": "unknown", "description": "Status info unavailable"}


def _request(url: str) -> Optional[Dict[str, Any]]:
    """GET a status summary with retries. Returns None after the last failure."""
    for attempt in range(STATUS_RETRIES):
        try:
            r = requests.get(url, timeout=15)
            r.raise_for_status()
            data = r.json()
            return data if isinstance(data, dict) else None
        except (requests.RequestException, ValueError) as e:
            logger.warning("Status page attempt %s failed (%s): %s", attempt + 1, url, e)
            if attempt < STATUS_RETRIES - 1:
                time.sleep(STATUS_RETRY_DELAY)
    return None


def parse_status(data: Optional[Dict[str, Any]]) -> Dict[str, str]:
    """Pull {indicator, description} out of a summary payload."""
    status = (data or {}).get("status")
    if not isinstance(status, dict) or "indicator" not in status:
        return dict(UNKNOWN)
    return {
        "indicator": str(status.get("indicator") or "unknown"),  # none | minor | major | critical
        "description": str(status.get("description") or ""),
    }


def fetch_statuses(endpoints: Mapping[ProviderName, str] = STATUS_ENDPOINTS) -> Dict[ProviderName, Dict[str, str]]:
    return {name: parse_status(_request(url)) for name, url in endpoints.items()}
