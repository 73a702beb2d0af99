"""Small request/response helpers used across middleware and views."""

from django.http import HttpResponseRedirect


class HttpResponseTemporaryRedirect(HttpResponseRedirect):
    """307 redirect: the client repeats the request method on the new URL."""

    status_code = 307


def get_client_ip(request) -> str:
    """Best-effort client IP, honouring common proxy headers."""
    forwarded = request.META.get("HTTP_X_FORWARDED_FOR")
    if forwarded:
        return forwarded.split(",")[0].strip()

    for header in ("HTTP_X_REAL_IP", "HTTP_CF_CONNECTING_IP", "REMOTE_ADDR"):
        value = request.META.get(header)
        if value:
            return value.strip()
    return "unknown"


def get_user_agent(request) -> str:
    return request.META.get("HTTP_USER_AGENT", "")


__all__ = ["HttpResponseTemporaryRedirect", "get_client_ip", "get_user_agent"]
