# =============================================================================
# Multimodal Vision Demo - FastAPI Proxy Server
# =============================================================================
# Defines the HTTP API endpoints for receiving an uploaded image with a prompt
# and task label, validating the submission, forwarding it to the hosted
# multimodal model under a timeout, and returning the generated text (or a
# classified error) as a JSON envelope.
# =============================================================================

import asyncio
import logging
import time
from contextlib import asynccontextmanager
from typing import Optional, Union

from fastapi import FastAPI, File, Form, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from config import get_config
from server.errors import error_response
from server.provider import GeminiProvider, ModelProvider
from shared.schemas import AnalysisMetadata, AnalysisResult, ErrorResponse
from shared.tasks import Task

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Global references populated during lifespan startup
# ---------------------------------------------------------------------------
_provider: Optional[ModelProvider] = None
_start_time: float = 0.0


class ProviderTimeoutError(Exception):
    """Raised when the provider call loses the race against the server timer."""


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler that builds the model provider.

    On startup:
        - Creates the Gemini provider when GEMINI_API_KEY is configured.
        - Logs a warning otherwise; /api/analyze then answers missing_api_key.
    """
    global _provider, _start_time

    config = get_config()
    _start_time = time.time()

    if config.provider_configured:
        logger.info("Using model provider: %s", config.model_name)
        _provider = GeminiProvider(api_key=config.gemini_api_key, model_name=config.model_name)
    else:
        logger.warning("GEMINI_API_KEY environment variable is not set")
        _provider = None

    logger.info("Server ready — accepting requests.")
    yield

    logger.info("Shutting down server...")
    _provider = None


# ---------------------------------------------------------------------------
# FastAPI application
# ---------------------------------------------------------------------------
app = FastAPI(
    title="Multimodal Vision Demo Server",
    description=(
        "Receives an image, a prompt and a task label, forwards them to a "
        "hosted multimodal model and returns the generated text."
    ),
    version="0.1.0",
    lifespan=lifespan,
)


@app.get("/health")
def health_check():
    """
    Health check endpoint.

    Returns server status, whether a provider is configured, and uptime.
    """
    configured = _provider is not None
    uptime = time.time() - _start_time if _start_time > 0 else 0.0
    return {
        "status": "ok" if configured else "degraded",
        "provider_configured": configured,
        "model": _provider.model_name if configured else None,
        "uptime_seconds": round(uptime, 2),
    }


def _validation_failure(status_code: int, message: str, error_type: str) -> JSONResponse:
    """Build the ``{error, errorType}`` body used by pre-provider checks."""
    body = ErrorResponse(error=message, error_type=error_type)
    return JSONResponse(status_code=status_code, content=body.to_wire())


@app.exception_handler(RequestValidationError)
async def form_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Report malformed form fields as missing_fields rather than FastAPI's 422."""
    logger.warning("Rejected malformed request to %s: %s", request.url.path, exc.errors())
    return _validation_failure(400, "Missing required fields", "missing_fields")


async def _generate_with_timeout(
    provider: ModelProvider,
    prompt: str,
    image_bytes: bytes,
    mime_type: str,
    timeout: float,
) -> str:
    """
    Race the provider call against the server-side timer.

    Args:
        provider:    The configured model provider.
        prompt:      Instruction text.
        image_bytes: Raw image content.
        mime_type:   MIME type of the image.
        timeout:     Seconds before the call is abandoned.

    Returns:
        The generated text.

    Raises:
        ProviderTimeoutError: If the timer fires first.
    """
    try:
        return await asyncio.wait_for(
            provider.generate(prompt, image_bytes, mime_type),
            timeout=timeout,
        )
    except asyncio.TimeoutError:
        raise ProviderTimeoutError(
            f"Provider request timeout after {timeout:g} seconds"
        ) from None


@app.post("/api/analyze")
async def analyze_image(
    image: Union[UploadFile, str, None] = File(default=None),
    prompt: Optional[str] = Form(default=None),
    task: str = Form(default=Task.ANALYSIS.value),
):
    """
    Analyze an uploaded image with the hosted model.

    Validation happens in a fixed order: required fields, upload size, then
    provider configuration.  Every provider failure is classified and
    returned as JSON; the endpoint never lets an exception escape.

    Args:
        image:  Uploaded image file.
        prompt: Instruction text sent with the image.
        task:   Task label, echoed back in the response metadata.

    Returns:
        AnalysisResult JSON with a private one-hour Cache-Control header, or
        a failure envelope with the mapped status code.
    """
    config = get_config()

    # A part without a filename arrives as a plain string, not a file.
    if image is None or isinstance(image, str) or not prompt:
        return _validation_failure(400, "Missing required fields", "missing_fields")

    try:
        image_bytes = await image.read()

        if len(image_bytes) > config.max_upload_bytes:
            limit_mb = config.max_upload_bytes // (1024 * 1024)
            return _validation_failure(
                400, f"File size exceeds {limit_mb} MB limit", "file_too_large",
            )

        if _provider is None:
            return _validation_failure(
                500, "Gemini API key not configured", "missing_api_key",
            )

        mime_type = image.content_type or "application/octet-stream"

        inference_start = time.time()
        text = await _generate_with_timeout(
            _provider,
            prompt,
            image_bytes,
            mime_type,
            timeout=config.provider_timeout_seconds,
        )
        processing_time_ms = int((time.time() - inference_start) * 1000)

        logger.info(
            "Analyzed %s (%d bytes, task=%s) in %dms",
            image.filename, len(image_bytes), task, processing_time_ms,
        )

        result = AnalysisResult(
            text=text,
            metadata=AnalysisMetadata(
                model=_provider.model_name,
                processing_time=processing_time_ms,
                task=task,
                timestamp=int(time.time() * 1000),
            ),
        )
    except Exception as exc:
        return error_response(exc)

    return JSONResponse(
        status_code=200,
        content=result.to_wire(),
        headers={"Cache-Control": f"private, max-age={config.response_cache_max_age}"},
    )
