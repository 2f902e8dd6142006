"""
Client IP extraction for rate limiting.

Only headers written by our own edge proxy are trusted. ``X-Forwarded-For``
and ``X-Real-IP`` are client-controlled and would let a caller rotate its
identity to dodge per-IP limits, so they are ignored.
"""

from fastapi import Request

# Set by the Envoy edge proxy in front of the API; clients cannot override it
TRUSTED_PROXY_HEADER = "X-Envoy-External-Address"


def get_secure_client_ip(request: Request) -> str:
    """
    Return the caller's IP address.

    Prefers the trusted proxy header, then the direct peer address, and
    finally ``"unknown"`` when neither is available (e.g. some test clients).
    """
    proxied = request.headers.get(TRUSTED_PROXY_HEADER)
    if proxied:
        return proxied.split(",")[0].strip()

    if request.client:
        return request.client.host

    return "unknown"
