from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping

import httpx

from .errors import ProviderRateLimited, ProviderRequestError

Json = dict[str, Any]


def _is_absolute(path: str) -> bool:
    return path.startswith(("http://", "https://"))


@dataclass
class BaseHttpClient:
    """
    Shared httpx wrapper for the ESPN and rating-model clients.

    One pooled `httpx.Client` per instance. Every failure surfaces as a
    `ProviderRequestError` (or `ProviderRateLimited` for HTTP 429), so callers
    and the retry policy only deal with provider errors.
    """

    base_url: str
    timeout_s: float = 30.0
    connect_timeout_s: float = 10.0
    headers: Mapping[str, str] = field(default_factory=dict)

    # httpx.MockTransport in tests
    transport: httpx.BaseTransport | None = None

    def __post_init__(self) -> None:
        self._client = httpx.Client(
            base_url=self.base_url.rstrip("/") + "/",
            timeout=httpx.Timeout(self.timeout_s, connect=self.connect_timeout_s),
            headers=dict(self.headers),
            transport=self.transport,
            follow_redirects=True,
        )

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> BaseHttpClient:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _send(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        url = path if _is_absolute(path) else path.lstrip("/")
        try:
            resp = self._client.request(method, url, **kwargs)
        except httpx.RequestError as e:
            raise ProviderRequestError(f"{method} {url} failed: {e}") from e

        if resp.status_code == 429:
            raise ProviderRateLimited(f"{method} {resp.request.url} was throttled (HTTP 429).")
        if resp.is_error:
            raise ProviderRequestError(f"HTTP {resp.status_code} for {method} {resp.request.url}")
        return resp

    def request_json(
        self,
        method: str,
        path: str,
        *,
        params: Mapping[str, Any] | None = None,
        json: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> Json:
        """Send a request and return its body, which must be a JSON object.

        Relative paths resolve against `base_url`; absolute URLs are used as-is.
        """
        resp = self._send(method, path, params=params, json=json, headers=headers)
        try:
            data = resp.json()
        except ValueError as e:
            raise ProviderRequestError(f"{method} {resp.request.url} returned invalid JSON.") from e

        if not isinstance(data, dict):
            raise ProviderRequestError(f"Expected a JSON object, got {type(data).__name__}")
        return data

    def get_json(
        self,
        path: str,
        *,
        params: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> Json:
        return self.request_json("GET", path, params=params, headers=headers)

    def post_json(
        self,
        path: str,
        *,
        json: Mapping[str, Any],
        headers: Mapping[str, str] | None = None,
    ) -> Json:
        return self.request_json("POST", path, json=json, headers=headers)
