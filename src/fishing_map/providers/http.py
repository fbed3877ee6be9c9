from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Dict, Optional

import requests
from requests.exceptions import ConnectionError, ReadTimeout

from fishing_map.errors import TransientProviderError


@dataclass
class HTTPClient:
    user_agent: str
    timeout_s: int = 25
    tries: int = 1
    backoff_s: float = 0.8

    def __post_init__(self) -> None:
        self.s = requests.Session()
        self.s.headers.update(
            {
                "User-Agent": self.user_agent,
                "Accept": "application/json, application/geo+json, text/plain;q=0.9, */*;q=0.8",
            }
        )

    def _get(self, url: str, params: Optional[Dict[str, Any]], timeout_s: Optional[int]) -> requests.Response:
        timeout = timeout_s if timeout_s is not None else self.timeout_s
        last_err: Optional[Exception] = None
        for attempt in range(max(1, self.tries)):
            try:
                r = self.s.get(url, params=params, timeout=timeout)
                r.raise_for_status()
                return r
            except (ReadTimeout, ConnectionError) as e:
                last_err = e
                if attempt + 1 < self.tries:
                    time.sleep(self.backoff_s * (2**attempt))
            except requests.HTTPError as e:
                raise TransientProviderError(
                    f"HTTP {e.response.status_code if e.response is not None else '?'} for {url}"
                ) from e
        raise TransientProviderError(f"GET {url} failed: {last_err}") from last_err

    def get_json(
        self,
        url: str,
        params: Optional[Dict[str, Any]] = None,
        timeout_s: Optional[int] = None,
    ) -> Any:
        r = self._get(url, params, timeout_s)
        try:
            return r.json()
        except ValueError as e:
            raise TransientProviderError(f"Non-JSON body from {url}") from e

    def get_text(
        self,
        url: str,
        params: Optional[Dict[str, Any]] = None,
        timeout_s: Optional[int] = None,
    ) -> str:
        return self._get(url, params, timeout_s).text
