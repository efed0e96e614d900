# =============================================================================
# Multimodal Vision Demo - Analysis HTTP Client
# =============================================================================
# Provides the AnalysisClient class responsible for posting an image, prompt
# and task to the proxy server as multipart form data and turning the JSON
# envelope (or the transport failure) into a result or a typed exception.
#
# The client-side timeout is independent of the server's own provider
# timeout; whichever fires first determines the observed failure.  A late
# server answer after the client gave up is simply never seen.
# =============================================================================

import logging
from dataclasses import dataclass
from typing import Optional

import requests

from shared.schemas import AnalysisResult

logger = logging.getLogger(__name__)

ANALYZE_PATH = "/api/analyze"


@dataclass(frozen=True)
class AnalysisRequest:
    """A single submission; built when the user hits analyze."""

    image_bytes: bytes
    mime_type: str
    prompt: str
    task: str
    filename: str = "image"


class AnalysisTimeout(Exception):
    """The client-side timer fired before the server answered."""


class AnalysisNetworkError(Exception):
    """The server could not be reached."""


class AnalysisRequestError(Exception):
    """
    The server answered with a non-success status.

    Args:
        message:    The server's ``error`` field, or a generic message.
        status:     HTTP status code.
        error_type: The server's ``errorType`` field, when present.
    """

    def __init__(self, message: str, status: int, error_type: Optional[str] = None):
        super().__init__(message)
        self.status = status
        self.error_type = error_type


class AnalysisClient:
    """
    HTTP client for the proxy server's analyze endpoint.

    Args:
        server_url: Base URL of the server (e.g., "http://127.0.0.1:8000").
        timeout:    Seconds to wait for the server before giving up.  Bounds
                    the connect and each read separately, not the total
                    request duration.
    """

    def __init__(self, server_url: str, timeout: float = 30.0):
        self._server_url = server_url.rstrip("/")
        self._timeout = timeout
        self._session = requests.Session()

    def analyze(self, request: AnalysisRequest) -> AnalysisResult:
        """
        Submit an image for analysis.

        Args:
            request: The image, prompt and task to submit.

        Returns:
            AnalysisResult parsed from the server's success envelope.

        Raises:
            AnalysisTimeout:      If the client-side timeout expired.
            AnalysisNetworkError: If the connection failed.
            AnalysisRequestError: If the server returned an error status.
        """
        url = f"{self._server_url}{ANALYZE_PATH}"
        files = {"image": (request.filename, request.image_bytes, request.mime_type)}
        data = {"prompt": request.prompt, "task": request.task}

        try:
            response = self._session.post(url, files=files, data=data, timeout=self._timeout)
        except requests.exceptions.Timeout as exc:
            logger.warning("Analysis request timed out after %.0fs", self._timeout)
            raise AnalysisTimeout(f"Request aborted after {self._timeout:g}s") from exc
        except requests.exceptions.ConnectionError as exc:
            raise AnalysisNetworkError(f"network request failed: {exc}") from exc

        if response.status_code >= 400:
            raise self._request_error(response)

        result = AnalysisResult.model_validate(response.json())
        logger.info(
            "Server responded %d (%d KB upload, task=%s)",
            response.status_code, len(request.image_bytes) // 1024, request.task,
        )
        return result

    @staticmethod
    def _request_error(response: requests.Response) -> AnalysisRequestError:
        """Build the exception for a non-success response."""
        try:
            body = response.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}

        message = body.get("error") or "Failed to analyze image"
        logger.warning(
            "Server rejected analysis (%d, %s): %s",
            response.status_code, body.get("errorType"), message,
        )
        return AnalysisRequestError(message, response.status_code, body.get("errorType"))
