import logging
from typing import Any, Callable, Dict, Optional, Union

import requests

from .. import settings
from ..context import CancelToken
from ..errors import CancelledError, DecodeError, TransportError, UpstreamError, ValidationError

LOGGER = logging.getLogger(__name__)

Logger = Union[logging.Logger, logging.LoggerAdapter]


class NovantClient:
    """Novant API client.

    Every ``call`` is one form-encoded POST to ``<base_url>/<operation>``
    authenticated with the API key as basic-auth user and an empty password.
    There are no retries.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = settings.NOVANT_API_URL,
        timeout: float = settings.NOVANT_TIMEOUT_S,
        session: Optional[requests.Session] = None,
        session_factory: Optional[Callable[[], requests.Session]] = None,
    ):
        self.api_key = (api_key or "").strip()
        self.base_url = base_url.strip().rstrip("/")
        self.timeout = timeout
        self.session_factory = session_factory or requests.Session
        self.session = session or self.session_factory()

    def __enter__(self) -> "NovantClient":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def close(self) -> None:
        self.session.close()

    def fork(self) -> "NovantClient":
        """Copy of this client with its own session, for use on another thread."""
        return NovantClient(
            self.api_key,
            base_url=self.base_url,
            timeout=self.timeout,
            session_factory=self.session_factory,
        )

    def call(
        self,
        operation: str,
        params: Optional[Dict[str, str]] = None,
        token: Optional[CancelToken] = None,
        logger: Optional[Logger] = None,
    ) -> Dict[str, Any]:
        log = logger or LOGGER
        if not self.api_key:
            log.error("/%s request skipped: no API key configured", operation)
            raise ValidationError("Missing apiKey value")

        timeout = self.timeout
        if token is not None:
            token.raise_if_cancelled(f"/{operation}")
            timeout = token.clamp_timeout(self.timeout)

        url = f"{self.base_url}/{operation}"
        log.debug("POST %s %s", url, sorted((params or {}).keys()))
        try:
            res = self.session.post(
                url,
                data=params or {},
                auth=(self.api_key, ""),
                timeout=timeout,
            )
        except requests.RequestException as exc:
            if token is not None and token.cancelled:
                log.warning("/%s request aborted: query cancelled", operation)
                raise CancelledError(f"Query cancelled during /{operation}") from exc
            if isinstance(exc, requests.Timeout):
                log.error("/%s request timed out: %s", operation, exc)
                raise TransportError(f"Novant /{operation} timed out: {exc}") from exc
            log.error("/%s request failed: %s", operation, exc)
            raise TransportError(f"Novant /{operation} network error: {exc}") from exc

        payload = self._decode(res, operation, log)

        if res.status_code != 200:
            message = payload.get("err_msg") if isinstance(payload, dict) else None
            if not isinstance(message, str):
                log.error("/%s request failed: HTTP %s without err_msg", operation, res.status_code)
                raise DecodeError(f"Novant /{operation} HTTP {res.status_code}: missing err_msg")
            log.error("/%s request failed: HTTP %s %s", operation, res.status_code, message)
            raise UpstreamError(message, status_code=res.status_code)

        if not isinstance(payload, dict):
            log.error("/%s returned %s instead of a JSON object", operation, type(payload).__name__)
            raise DecodeError(f"Novant /{operation} did not return a JSON object")
        return payload

    @staticmethod
    def _decode(res: requests.Response, operation: str, log: Logger) -> Any:
        try:
            return res.json()
        except ValueError as exc:
            body = (res.text or "")[:300]
            log.error("/%s returned malformed JSON (HTTP %s): %s", operation, res.status_code, body)
            raise DecodeError(f"Novant /{operation} returned malformed JSON: {exc}") from exc
