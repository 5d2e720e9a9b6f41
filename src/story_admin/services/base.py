from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Optional
from urllib.parse import urljoin

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from ..config import (
    HTTP_TIMEOUT,
    NETWORK_ERROR_MESSAGE,
    REQUEST_HEADERS,
    RETRY_BACKOFF,
    RETRY_STATUSES,
    RETRY_TOTAL,
)

logger = logging.getLogger("story_admin")

TokenProvider = Callable[[], Optional[str]]


class ApiError(Exception):
    """Base class for failures talking to a remote API."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        payload: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.payload = payload or {}


class NetworkError(ApiError):
    """No response was received."""


class ServerError(ApiError):
    """Non-2xx response, or a `success: false` payload."""


class NotFoundError(ServerError):
    pass


class ApiClient:
    """JSON-over-HTTPS client with retries and bearer-token authorization."""

    def __init__(
        self,
        base_url: str,
        token_provider: Optional[TokenProvider] = None,
        timeout: Optional[float] = HTTP_TIMEOUT,
    ):
        self.base_url = base_url if base_url.endswith("/") else base_url + "/"
        self.token_provider = token_provider
        self.timeout = timeout
        self.session = self._create_session()

    def __enter__(self) -> "ApiClient":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    def close(self) -> None:
        self.session.close()

    def _create_session(self) -> requests.Session:
        s = requests.Session()
        s.headers.update(REQUEST_HEADERS)
        retries = Retry(
            total=RETRY_TOTAL,
            backoff_factor=RETRY_BACKOFF,
            status_forcelist=list(RETRY_STATUSES),
            raise_on_status=False,
        )
        adapter = HTTPAdapter(max_retries=retries)
        s.mount("https://", adapter)
        s.mount("http://", adapter)
        return s

    def _auth_headers(self) -> Dict[str, str]:
        token = self.token_provider() if self.token_provider else None
        if not token:
            return {}
        return {"Authorization": f"Bearer {token}"}

    def _url(self, path: str) -> str:
        return urljoin(self.base_url, path.lstrip("/"))

    def _request(
        self,
        method: str,
        path: str,
        fallback_message: str,
        *,
        allow_unsuccessful: bool = False,
        **kwargs: Any,
    ) -> Dict[str, Any]:
        """Perform a request and return the decoded JSON body.

        Transport failures raise NetworkError; non-2xx responses and
        `success: false` bodies raise ServerError (NotFoundError on 404)
        carrying the server's message, or `fallback_message` when the body
        has none. With `allow_unsuccessful`, a 2xx `success: false` body is
        returned to the caller instead.
        """
        url = self._url(path)
        headers = self._auth_headers()
        logger.debug("%s %s", method, url)
        try:
            resp = self.session.request(
                method, url, headers=headers, timeout=self.timeout, **kwargs
            )
        except requests.RequestException as e:
            logger.warning("%s %s failed: %s", method, url, e)
            raise NetworkError(NETWORK_ERROR_MESSAGE) from e

        body = _decode_json(resp)
        message = body.get("message") or fallback_message

        if resp.status_code == 404:
            logger.info("%s %s -> 404: %s", method, url, message)
            raise NotFoundError(message, resp.status_code, body)
        if not resp.ok:
            logger.warning("%s %s -> HTTP %d: %s", method, url, resp.status_code, message)
            raise ServerError(message, resp.status_code, body)
        if body.get("success") is False and not allow_unsuccessful:
            logger.warning("%s %s -> unsuccessful: %s", method, url, message)
            raise ServerError(message, resp.status_code, body)

        logger.debug("%s %s -> HTTP %d", method, url, resp.status_code)
        return body

    def _get(self, path: str, fallback_message: str, **kwargs: Any) -> Dict[str, Any]:
        return self._request("GET", path, fallback_message, **kwargs)

    def _post(self, path: str, fallback_message: str, **kwargs: Any) -> Dict[str, Any]:
        return self._request("POST", path, fallback_message, **kwargs)

    def _put(self, path: str, fallback_message: str, **kwargs: Any) -> Dict[str, Any]:
        return self._request("PUT", path, fallback_message, **kwargs)


def _decode_json(resp: requests.Response) -> Dict[str, Any]:
    try:
        body = resp.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {"data": body}
