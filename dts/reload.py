from __future__ import annotations

import httpx

from .settings import settings


def send_reload(
    url: str | None = None,
    timeout_s: float | None = None,
    transport: httpx.BaseTransport | None = None,
) -> tuple[bool, str]:
    """POST to the Prometheus reload endpoint.

    Returns (ok, message). Only HTTP 200 counts as success.
    """
    url = url or settings.reload_url
    timeout_s = settings.reload_timeout_s if timeout_s is None else timeout_s
    try:
        with httpx.Client(timeout=timeout_s, follow_redirects=False, transport=transport) as client:
            resp = client.post(url)
    except httpx.HTTPError as e:
        return False, f"{type(e).__name__}: {e}"
    if resp.status_code != 200:
        return False, f"HTTP {resp.status_code}"
    return True, "Reloaded"
