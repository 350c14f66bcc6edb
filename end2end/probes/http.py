"""httpx-backed probe for end-to-end HTTP steps.

One client per run, so cookies set by earlier steps (a login, say) are sent
by the later ones.
"""

from __future__ import annotations

import logging

import httpx

from ..config import settings
from ..engine.executor import Deadline, ProbeOutcome
from ..engine.steps import Method, Payload

logger = logging.getLogger(__name__)

# Redirects are followed only for the methods that are safe to repeat.
REDIRECTABLE = {Method.GET, Method.HEAD}


class HttpProbe:
    """Performs one HTTP request per call; 2xx is success."""

    def __init__(
        self,
        user_agent: str | None = None,
        timeout: float | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.timeout = timeout or settings.http_timeout
        self._client = httpx.Client(
            headers={"User-Agent": user_agent or settings.user_agent},
            timeout=self.timeout,
            transport=transport,
        )

    def __call__(
        self,
        method: Method,
        target: str,
        payload: Payload | None,
        deadline: Deadline | None = None,
    ) -> ProbeOutcome:
        timeout = self.timeout
        if deadline is not None:
            timeout = min(timeout, deadline.remaining())

        data = None
        if payload is not None:
            data = {}
            for key, value in payload:
                data.setdefault(key, []).append(value)

        resp = self._client.request(
            method.value,
            target,
            data=data,
            timeout=timeout,
            follow_redirects=method in REDIRECTABLE,
        )
        status_line = f"{resp.status_code} {resp.reason_phrase}".strip()
        logger.debug("%s %s -> %s", method.value, target, status_line)
        return ProbeOutcome(resp.is_success, status_line)

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> HttpProbe:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()
