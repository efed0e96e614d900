"""AnalysisController end-to-end flows with fake transports and in-process server."""
import pytest
from fastapi.testclient import TestClient

import server.app as app_module
from frontend.cache import KeyValueStore, ResultCache
from frontend.cache_key import derive_cache_key
from frontend.client import (
    AnalysisClient,
    AnalysisNetworkError,
    AnalysisRequestError,
    AnalysisTimeout,
)
from frontend.controller import AnalysisController
from frontend.errors import MSG_NETWORK, MSG_QUOTA, MSG_TIMEOUT
from frontend.state import ErrorKind, LoadingState
from shared.tasks import DEFAULT_PROMPTS, Task

RATE_LIMITED_MESSAGE = "Rate limit exceeded. Please try again in a few moments."


def _loading_history(controller):
    history = [controller.state.loading]

    def _record(state):
        if state.loading != history[-1]:
            history.append(state.loading)

    controller.subscribe(_record)
    return history


@pytest.fixture
def make_controller(result_cache):
    def _make(transport, cache=result_cache):
        return AnalysisController(client=transport, cache=cache)

    return _make


# ---------------------------------------------------------------------------
# Upload
# ---------------------------------------------------------------------------


def test_upload_rejects_non_image_without_leaving_idle(make_controller, make_transport, bicycle_result):
    controller = make_controller(make_transport(bicycle_result))
    history = _loading_history(controller)

    assert controller.upload("notes.txt", b"hello", "text/plain") is False

    assert controller.state.error.kind == ErrorKind.CLIENT
    assert controller.state.image is None
    assert history == [LoadingState.IDLE]


def test_upload_rejects_oversized_file(make_controller, make_transport, bicycle_result):
    transport = make_transport(bicycle_result)
    controller = make_controller(transport)

    assert controller.upload("huge.jpg", b"\0" * (2 * 1024 * 1024 + 1), "image/jpeg") is False

    assert controller.state.error.kind == ErrorKind.CLIENT
    assert "2 MB" in controller.state.error.message
    assert transport.requests == []


def test_upload_unreadable_image_is_client_error(make_controller, make_transport, bicycle_result):
    controller = make_controller(make_transport(bicycle_result))
    history = _loading_history(controller)

    assert controller.upload("broken.png", b"not really a png", "image/png") is False

    assert controller.state.error.kind == ErrorKind.CLIENT
    assert history == [LoadingState.IDLE, LoadingState.UPLOADING, LoadingState.IDLE]


def test_upload_builds_preview_and_key(make_controller, make_transport, bicycle_result, jpeg_bytes):
    controller = make_controller(make_transport(bicycle_result))

    assert controller.upload("bike.jpg", jpeg_bytes, "image/jpeg") is True

    state = controller.state
    assert state.preview.startswith("data:image/png;base64,")
    assert state.cache_key == derive_cache_key(jpeg_bytes, "analysis", "Describe this image in detail.")
    assert state.error is None


# ---------------------------------------------------------------------------
# Analyze
# ---------------------------------------------------------------------------


def test_analyze_without_image_is_client_error(make_controller, make_transport, bicycle_result):
    transport = make_transport(bicycle_result)
    controller = make_controller(transport)

    controller.analyze()

    assert controller.state.error.kind == ErrorKind.CLIENT
    assert controller.state.loading == LoadingState.IDLE
    assert transport.requests == []


def test_first_analysis_calls_server_and_caches(
    make_controller, make_transport, result_cache, bicycle_result, photo_jpeg_bytes
):
    assert len(photo_jpeg_bytes) < 2 * 1024 * 1024
    transport = make_transport(bicycle_result)
    controller = make_controller(transport)
    history = _loading_history(controller)

    controller.upload("bike.jpg", photo_jpeg_bytes, "image/jpeg")
    controller.analyze()

    assert history == [
        LoadingState.IDLE,
        LoadingState.UPLOADING,
        LoadingState.IDLE,
        LoadingState.ANALYZING,
        LoadingState.IDLE,
    ]
    assert controller.state.result.text == "A red bicycle."
    assert controller.state.from_cache is False
    assert len(transport.requests) == 1
    sent = transport.requests[0]
    assert sent.prompt == "Describe this image in detail."
    assert sent.task == "analysis"
    assert sent.image_bytes == photo_jpeg_bytes

    key = derive_cache_key(photo_jpeg_bytes, "analysis", "Describe this image in detail.")
    assert result_cache.get(key) == bicycle_result


def test_repeat_analysis_is_served_from_cache(
    make_controller, make_transport, bicycle_result, photo_jpeg_bytes
):
    transport = make_transport(bicycle_result)
    controller = make_controller(transport)
    controller.upload("bike.jpg", photo_jpeg_bytes, "image/jpeg")
    controller.analyze()

    controller.analyze()

    assert len(transport.requests) == 1
    assert controller.state.result == bicycle_result
    assert controller.state.from_cache is True


def test_warm_cache_is_shown_on_upload(make_controller, make_transport, result_cache, bicycle_result, jpeg_bytes):
    first = make_controller(make_transport(bicycle_result))
    first.upload("bike.jpg", jpeg_bytes, "image/jpeg")
    first.analyze()

    transport = make_transport(AnalysisNetworkError("network request failed"))
    second = make_controller(transport)
    second.upload("bike.jpg", jpeg_bytes, "image/jpeg")

    assert second.state.result == bicycle_result
    assert second.state.from_cache is True
    second.analyze()
    assert transport.requests == []


@pytest.mark.parametrize(
    "error, kind, message",
    [
        (AnalysisTimeout("aborted"), ErrorKind.TIMEOUT, MSG_TIMEOUT),
        (AnalysisRequestError("API quota exceeded. Please try again later.", 429), ErrorKind.QUOTA, MSG_QUOTA),
        (AnalysisRequestError("rate limited", 429), ErrorKind.QUOTA, MSG_QUOTA),
        (AnalysisRequestError(RATE_LIMITED_MESSAGE, 429), ErrorKind.SERVER, RATE_LIMITED_MESSAGE),
        (AnalysisNetworkError("network request failed: refused"), ErrorKind.NETWORK, MSG_NETWORK),
        (RuntimeError("Failed to fetch"), ErrorKind.NETWORK, MSG_NETWORK),
        (AnalysisRequestError("An error occurred while processing your request", 500),
         ErrorKind.SERVER, "An error occurred while processing your request"),
    ],
)
def test_failures_are_classified(make_controller, make_transport, jpeg_bytes, error, kind, message):
    controller = make_controller(make_transport(error))
    controller.upload("bike.jpg", jpeg_bytes, "image/jpeg")

    controller.analyze()

    assert controller.state.loading == LoadingState.IDLE
    assert controller.state.error.kind == kind
    assert controller.state.error.message == message


def test_failed_analysis_is_not_cached(make_controller, make_transport, result_cache, jpeg_bytes):
    controller = make_controller(make_transport(AnalysisTimeout("aborted")))
    controller.upload("bike.jpg", jpeg_bytes, "image/jpeg")
    controller.analyze()

    assert result_cache.get(controller.state.cache_key) is None


# ---------------------------------------------------------------------------
# Retry
# ---------------------------------------------------------------------------


def test_retry_after_network_failure(make_controller, make_transport, result_cache, bicycle_result, jpeg_bytes):
    transport = make_transport(AnalysisNetworkError("network request failed"), bicycle_result)
    controller = make_controller(transport)
    controller.upload("bike.jpg", jpeg_bytes, "image/jpeg")
    controller.analyze()
    assert controller.state.error.kind == ErrorKind.NETWORK

    assert controller.retry() is True

    assert controller.state.error is None
    assert controller.state.result == bicycle_result
    assert len(transport.requests) == 2
    assert result_cache.get(controller.state.cache_key) == bicycle_result


def test_retry_not_offered_for_quota(make_controller, make_transport, jpeg_bytes):
    transport = make_transport(AnalysisRequestError("quota", 429))
    controller = make_controller(transport)
    controller.upload("bike.jpg", jpeg_bytes, "image/jpeg")
    controller.analyze()

    assert controller.retry() is False
    assert len(transport.requests) == 1


def test_retry_without_error_does_nothing(make_controller, make_transport, bicycle_result):
    transport = make_transport(bicycle_result)
    assert make_controller(transport).retry() is False
    assert transport.requests == []


# ---------------------------------------------------------------------------
# Task / prompt / cache clear
# ---------------------------------------------------------------------------


def test_select_task_resets_prompt_and_rekeys(make_controller, make_transport, bicycle_result, jpeg_bytes):
    controller = make_controller(make_transport(bicycle_result))
    controller.upload("bike.jpg", jpeg_bytes, "image/jpeg")
    controller.edit_prompt("Is there a bell?")
    edited_key = controller.state.cache_key

    controller.select_task(Task.EXTRACTION)

    assert controller.state.prompt == DEFAULT_PROMPTS[Task.EXTRACTION]
    assert controller.state.cache_key == derive_cache_key(
        jpeg_bytes, "extraction", DEFAULT_PROMPTS[Task.EXTRACTION]
    )
    assert controller.state.cache_key != edited_key


def test_different_task_misses_cache(make_controller, make_transport, bicycle_result, jpeg_bytes):
    transport = make_transport(bicycle_result)
    controller = make_controller(transport)
    controller.upload("bike.jpg", jpeg_bytes, "image/jpeg")
    controller.analyze()

    controller.select_task(Task.CREATIVE)
    controller.analyze()

    assert len(transport.requests) == 2
    assert transport.requests[1].task == "creative"
    assert transport.requests[1].prompt == DEFAULT_PROMPTS[Task.CREATIVE]


def test_clear_cache_forces_new_request(make_controller, make_transport, result_cache, bicycle_result, jpeg_bytes):
    transport = make_transport(bicycle_result)
    controller = make_controller(transport)
    controller.upload("bike.jpg", jpeg_bytes, "image/jpeg")
    controller.analyze()
    controller.analyze()
    assert controller.state.from_cache is True

    controller.clear_cache()

    assert controller.state.from_cache is False
    assert result_cache.get(controller.state.cache_key) is None
    controller.analyze()
    assert len(transport.requests) == 2


def test_clear_cache_without_key_is_noop(make_controller, make_transport, bicycle_result):
    controller = make_controller(make_transport(bicycle_result))
    controller.clear_cache()
    assert controller.state.cache_key is None


class _FailingStore(KeyValueStore):
    def get(self, key):
        raise OSError("storage disabled")

    def set(self, key, value):
        raise OSError("quota exceeded")

    def delete(self, key):
        raise OSError("storage disabled")


def test_broken_cache_never_surfaces_as_error(make_controller, make_transport, bicycle_result, jpeg_bytes):
    transport = make_transport(bicycle_result)
    controller = make_controller(transport, cache=ResultCache(_FailingStore()))
    controller.upload("bike.jpg", jpeg_bytes, "image/jpeg")

    controller.analyze()
    controller.analyze()

    assert controller.state.error is None
    assert controller.state.result == bicycle_result
    assert len(transport.requests) == 2


# ---------------------------------------------------------------------------
# Across the HTTP boundary
# ---------------------------------------------------------------------------


@pytest.fixture
def in_process_client(monkeypatch):
    """AnalysisClient whose session is a TestClient bound to the FastAPI app."""

    def _make(provider):
        monkeypatch.setattr(app_module, "_provider", provider)
        client = AnalysisClient("http://testserver")
        client._session = TestClient(app_module.app)
        return client

    return _make


def test_end_to_end_success_through_server(make_controller, make_provider, in_process_client, jpeg_bytes):
    provider = make_provider(text="A red bicycle.")
    controller = make_controller(in_process_client(provider))
    controller.upload("bike.jpg", jpeg_bytes, "image/jpeg")

    controller.analyze()
    controller.analyze()

    assert controller.state.result.text == "A red bicycle."
    assert controller.state.result.metadata.model == "fake-vision-1"
    assert controller.state.from_cache is True
    assert len(provider.calls) == 1


def test_invalid_key_surfaces_as_server_kind(make_controller, make_provider, in_process_client, jpeg_bytes):
    provider = make_provider(error=RuntimeError("invalid API key"))
    controller = make_controller(in_process_client(provider))
    controller.upload("bike.jpg", jpeg_bytes, "image/jpeg")

    controller.analyze()

    error = controller.state.error
    assert error.kind == ErrorKind.SERVER
    assert error.message == "Invalid API key. Please check your API key configuration."
    # "server" is in the retryable set, so the retry action is offered.
    assert error.retryable is True
    assert controller.state.result is None


def test_server_rate_limit_is_retryable_server_kind(make_controller, make_provider, in_process_client, jpeg_bytes):
    provider = make_provider(error=RuntimeError("429 rate limit hit"))
    controller = make_controller(in_process_client(provider))
    controller.upload("bike.jpg", jpeg_bytes, "image/jpeg")

    controller.analyze()

    # The server's message starts with a capital "R", so the
    # case-sensitive "rate" match does not fire on the client.
    error = controller.state.error
    assert error.kind == ErrorKind.SERVER
    assert error.message == RATE_LIMITED_MESSAGE
    assert error.retryable is True
