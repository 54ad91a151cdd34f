"""Response-security audit: transport scheme and information-leaking headers."""
from __future__ import annotations

from typing import List, Mapping, Optional

from core.types import CONFIG_MISSING, Endpoint, SecurityReport, Transport

LEAKY_HEADERS = ("x-powered-by", "server")

INSECURE_PENALTY = 50
HEADER_PENALTY = 10


def audit(endpoint: Optional[Endpoint], headers: Mapping[str, str]) -> Optional[SecurityReport]:
    """
    Score an RPC endpoint from 100 down. Returns None for non-RPC transports,
    which are not audited.
    """
    if endpoint is None or not endpoint.configured:
        return SecurityReport(score=0, issues=(CONFIG_MISSING,))
    if endpoint.transport != Transport.RPC:
        return None

    score = 100
    issues: List[str] = []
    if endpoint.scheme != "https":
        score -= INSECURE_PENALTY
        issues.append("Insecure Transport (no HTTPS)")

    present = {k.lower() for k in headers}
    for h in LEAKY_HEADERS:
        if h in present:
            score -= HEADER_PENALTY
            issues.append(f"Header Leak: {h}")

    return SecurityReport(score=max(0, min(100, score)), issues=tuple(issues))
