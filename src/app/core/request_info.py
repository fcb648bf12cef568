"""
Request Metadata Helpers

Client IP and public base URL resolution for requests arriving through
Cloudflare or a reverse proxy.
"""

from fastapi import Request

from app.core.config import settings


def get_client_ip(request: Request) -> str:
    """
    Resolve the originating client IP.

    Precedence: ``cf-connecting-ip``, first ``x-forwarded-for`` hop,
    ``x-real-ip``, then the socket peer. Returns "unknown" when none is present.
    """
    headers = request.headers

    cf_ip = headers.get("cf-connecting-ip")
    if cf_ip:
        return cf_ip.strip()

    forwarded = headers.get("x-forwarded-for")
    if forwarded:
        first_hop = forwarded.split(",")[0].strip()
        if first_hop:
            return first_hop

    real_ip = headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()

    if request.client and request.client.host:
        return request.client.host

    return "unknown"


def get_base_url(request: Request) -> str:
    """Public base URL used to build view links (no trailing slash)."""
    if settings.site_url:
        return settings.site_url.rstrip("/")

    proto = request.headers.get("x-forwarded-proto") or request.url.scheme
    host = request.headers.get("x-forwarded-host") or request.headers.get("host")
    if host:
        return f"{proto}://{host}"
    return str(request.base_url).rstrip("/")
