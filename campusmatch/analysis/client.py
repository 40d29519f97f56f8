"""HTTP client for the LLM text analyzer (Anthropic Messages API)."""

import logging
from typing import Any, Dict, Optional

import requests

from campusmatch.logging import get_logger
from campusmatch.utils.rate_limit import RateLimiter

from .exceptions import (
    AnalysisConfigurationError,
    AnalysisHTTPError,
    AnalysisResponseError,
    AnalysisTimeoutError,
)

logger = get_logger(__name__, component="analysis")

USER_AGENT = "campusmatch/1.0"


class AnalyzerClient:
    """Thin wrapper around one ``POST /v1/messages`` call.

    Returns the first text block of the response. Calls are spaced by the
    optional rate limiter so bulk sweeps stay under the provider's limit.

    Attributes:
        api_url: Messages endpoint
        model: Model identifier
        timeout: Request timeout in seconds
    """

    def __init__(
        self,
        api_url: str,
        api_key: Optional[str],
        model: str,
        max_tokens: int = 1500,
        temperature: float = 0.3,
        timeout: int = 30,
        api_version: str = "2023-06-01",
        rate_limiter: Optional[RateLimiter] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        if not api_key:
            raise AnalysisConfigurationError("Analyzer API key is not configured")

        self.api_url = api_url
        self.model = model
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.timeout = timeout
        self.rate_limiter = rate_limiter

        self._session = session or requests.Session()
        self._session.headers.update(
            {
                "User-Agent": USER_AGENT,
                "content-type": "application/json",
                "x-api-key": api_key,
                "anthropic-version": api_version,
            }
        )

    def complete(self, prompt: str) -> str:
        """Send a single-turn prompt and return the response text.

        Raises:
            AnalysisHTTPError: On 4xx/5xx status or connection failure
            AnalysisTimeoutError: On request timeout
            AnalysisResponseError: On non-JSON body or missing text content
        """
        if self.rate_limiter is not None:
            waited = self.rate_limiter.acquire()
            if waited > 0:
                logger.debug(
                    f"Waited {waited:.2f}s before analyzer call",
                    extra={"event": "analysis.request.throttled", "wait_seconds": round(waited, 3)},
                )

        payload = {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "temperature": self.temperature,
            "messages": [{"role": "user", "content": prompt}],
        }
        data = self._post(payload)
        return self._extract_text(data)

    def _post(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        url = self.api_url
        try:
            logger.debug(
                f"HTTP POST request to {url}",
                extra={"event": "analysis.request", "url": url, "timeout": self.timeout},
            )
            response = self._session.post(url, json=payload, timeout=self.timeout)
        except requests.exceptions.Timeout as e:
            logger.warning(
                f"Analyzer request timed out after {self.timeout} seconds",
                extra={"event": "analysis.request.timeout", "url": url, "timeout": self.timeout},
            )
            raise AnalysisTimeoutError(
                f"Request to {url} timed out after {self.timeout} seconds", url=url
            ) from e
        except requests.exceptions.RequestException as e:
            logger.warning(
                f"Analyzer request failed: {e}",
                extra={"event": "analysis.request.error", "error_type": type(e).__name__, "url": url},
            )
            raise AnalysisHTTPError(f"Request to {url} failed: {e}", status_code=0, url=url) from e

        if response.status_code >= 400:
            # 401/403 mean the key is wrong; retrying will not help.
            level = logging.ERROR if response.status_code in (401, 403) else logging.WARNING
            logger.log(
                level,
                f"HTTP {response.status_code} from analyzer",
                extra={
                    "event": "analysis.request.http_error",
                    "status_code": response.status_code,
                    "url": url,
                },
            )
            raise AnalysisHTTPError(
                f"HTTP {response.status_code}: {response.reason}",
                status_code=response.status_code,
                url=url,
            )

        try:
            return response.json()
        except ValueError as e:
            raise AnalysisResponseError(f"Failed to parse JSON response from {url}: {e}") from e

    @staticmethod
    def _extract_text(data: Any) -> str:
        if not isinstance(data, dict):
            raise AnalysisResponseError("Analyzer response is not a JSON object")
        blocks = data.get("content")
        if not isinstance(blocks, list):
            raise AnalysisResponseError("Analyzer response has no content blocks")
        for block in blocks:
            if isinstance(block, dict) and block.get("type", "text") == "text":
                text = block.get("text")
                if isinstance(text, str) and text.strip():
                    return text
        raise AnalysisResponseError("Analyzer response contains no text")

    def close(self) -> None:
        self._session.close()
