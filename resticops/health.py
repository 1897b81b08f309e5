"""Healthcheck ping reporting."""

from typing import Optional

import requests

from .util.logging import get_logger

logger = get_logger(__name__)


class HealthReporter:
    """Sends start, success and failure pings to a healthcheck endpoint.

    Pings are best effort: a failed request is logged as a warning and never
    affects the outcome of the run.
    """

    def __init__(self, base_url: Optional[str], timeout: int = 10, session: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip("/") if base_url else None
        self.timeout = timeout
        self.session = session or requests.Session()

    @property
    def enabled(self) -> bool:
        return bool(self.base_url)

    def _post(self, suffix: str, body: str = "") -> bool:
        if not self.enabled:
            return False

        url = self.base_url + suffix
        try:
            response = self.session.post(url, data=body.encode("utf-8"), timeout=self.timeout)
            response.raise_for_status()
        except requests.exceptions.RequestException as e:
            logger.warning(f"Healthcheck ping to {url} failed: {e}")
            return False

        logger.debug(f"Healthcheck ping sent: {url}")
        return True

    def start(self) -> bool:
        return self._post("/start")

    def success(self, body: str) -> bool:
        return self._post("", body)

    def failure(self, body: str) -> bool:
        return self._post("/fail", body)
