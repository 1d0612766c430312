"""Shared HTTP plumbing for geocoding and routing providers."""
import logging
import threading
from typing import Any, Optional

import requests

from ..engine.errors import ProviderError, ProviderTimeout

logger = logging.getLogger(__name__)


class JsonHttpProvider:
    """
    Base for providers that answer a GET with JSON.

    Without an injected session each thread gets its own requests.Session, so
    the concurrent geocoding of both route ends never shares one. An injected
    session is used as given from every thread.
    """

    name = "provider"

    def __init__(
        self,
        base_url: str,
        timeout: float = 8.0,
        session: Optional[requests.Session] = None,
        user_agent: Optional[str] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._session = session
        self._local = threading.local()
        self.user_agent = user_agent

    @property
    def session(self) -> requests.Session:
        if self._session is not None:
            return self._session
        session = getattr(self._local, "session", None)
        if session is None:
            session = self._local.session = requests.Session()
        return session

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.user_agent:
            headers["User-Agent"] = self.user_agent
        return headers

    def _get_json(self, url: str, params: Optional[dict[str, Any]] = None) -> Any:
        """
        GET a URL and decode JSON.

        Raises ProviderTimeout on timeout and ProviderError on any transport
        error, non-2xx status or undecodable body.
        """
        try:
            resp = self.session.get(url, params=params, headers=self._headers(), timeout=self.timeout)
            resp.raise_for_status()
            return resp.json()
        except requests.Timeout:
            raise ProviderTimeout(self.name, self.timeout) from None
        except requests.RequestException as e:
            raise ProviderError(self.name, str(e)) from e
        except ValueError as e:
            raise ProviderError(self.name, f"invalid JSON response: {e}") from e
