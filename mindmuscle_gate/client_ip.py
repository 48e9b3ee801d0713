"""
Client IP Resolution
====================
Extracts the caller's IP from proxy and CDN headers.
"""

from typing import Mapping

UNKNOWN_CLIENT = "unknown"

FORWARDED_FOR_HEADER = "x-forwarded-for"
CDN_CONNECTING_IP_HEADER = "cf-connecting-ip"
REAL_IP_HEADER = "x-real-ip"


def resolve_client_ip(headers: Mapping[str, str]) -> str:
    """
    Resolve the client IP, first present header wins.

    1. X-Forwarded-For, first entry (the original client)
    2. CF-Connecting-IP
    3. X-Real-IP
    4. "unknown"

    Callers without any of these share the "unknown" rate limit bucket.
    """
    lowered = {key.lower(): value for key, value in headers.items()}

    forwarded = lowered.get(FORWARDED_FOR_HEADER)
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first

    for header in (CDN_CONNECTING_IP_HEADER, REAL_IP_HEADER):
        value = (lowered.get(header) or "").strip()
        if value:
            return value

    return UNKNOWN_CLIENT
