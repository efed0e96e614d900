# =============================================================================
# Multimodal Vision Demo - Analysis Controller
# =============================================================================
# Drives the end-to-end interaction: upload validation and preview, cache key
# derivation, cache lookup, request dispatch, response handling, retry and
# cache invalidation.  All state lives in an immutable UIState that is only
# ever changed by dispatching actions through ``state.reduce``; listeners are
# notified after every change.
# =============================================================================

import logging
from typing import Callable, List, Optional

from frontend.cache import ResultCache
from frontend.cache_key import DEFAULT_NAMESPACE, derive_cache_key
from frontend.client import AnalysisClient, AnalysisRequest
from frontend.errors import (
    MSG_FILE_TOO_LARGE,
    MSG_NO_IMAGE,
    MSG_NOT_AN_IMAGE,
    MSG_UNREADABLE_IMAGE,
    classify_failure,
)
from frontend.preview import PreviewError, build_preview
from frontend.state import (
    Action,
    AnalyzeFailed,
    AnalyzeRejected,
    AnalyzeStarted,
    AnalyzeSucceeded,
    CacheCleared,
    CacheKeyDerived,
    ErrorKind,
    ErrorRecord,
    PromptEdited,
    TaskSelected,
    UIState,
    UploadedImage,
    UploadFailed,
    UploadFinished,
    UploadRejected,
    UploadStarted,
    reduce,
)
from shared.tasks import Task

logger = logging.getLogger(__name__)

Listener = Callable[[UIState], None]


class AnalysisController:
    """
    Orchestrator for one user's analyze session.

    Args:
        client:          Transport used to reach the proxy server.
        cache:           Local result cache.
        max_upload_bytes: Largest image accepted before any network call.
        cache_namespace: Prefix of every derived cache key.
    """

    def __init__(
        self,
        client: AnalysisClient,
        cache: ResultCache,
        max_upload_bytes: int = 2 * 1024 * 1024,
        cache_namespace: str = DEFAULT_NAMESPACE,
    ):
        self._client = client
        self._cache = cache
        self._max_upload_bytes = max_upload_bytes
        self._cache_namespace = cache_namespace
        self._state = UIState()
        self._listeners: List[Listener] = []

    @property
    def state(self) -> UIState:
        return self._state

    def subscribe(self, listener: Listener) -> None:
        """Register a callback invoked with the new state after every change."""
        self._listeners.append(listener)

    def _dispatch(self, action: Action) -> None:
        self._state = reduce(self._state, action)
        for listener in self._listeners:
            listener(self._state)

    # -----------------------------------------------------------------
    # Form inputs
    # -----------------------------------------------------------------

    def select_task(self, task: Task) -> None:
        """Select a task; the prompt is reset to that task's default."""
        self._dispatch(TaskSelected(Task(task)))
        self._refresh_cache_key()

    def edit_prompt(self, prompt: str) -> None:
        self._dispatch(PromptEdited(prompt))
        self._refresh_cache_key()

    def _refresh_cache_key(self) -> None:
        """Re-derive the key so it always matches the current image, task and prompt."""
        if self._state.image is None:
            return
        self._dispatch(CacheKeyDerived(self._derive_key(self._state.image)))

    def _derive_key(self, image: UploadedImage) -> Optional[str]:
        return derive_cache_key(
            image.data,
            self._state.task,
            self._state.prompt,
            namespace=self._cache_namespace,
        )

    # -----------------------------------------------------------------
    # Upload
    # -----------------------------------------------------------------

    def upload(self, filename: str, data: bytes, mime_type: str) -> bool:
        """
        Accept an image from the user.

        Invalid files are rejected before the state machine leaves idle.
        Accepted files move through uploading while the preview is built,
        then get a cache key; a warm key shows the cached result at once.

        Args:
            filename:  Original file name.
            data:      Full file content.
            mime_type: MIME type reported for the file.

        Returns:
            True if the image was accepted and is ready for analysis.
        """
        if not (mime_type or "").startswith("image/"):
            self._dispatch(UploadRejected(ErrorRecord(ErrorKind.CLIENT, MSG_NOT_AN_IMAGE)))
            return False

        if len(data) > self._max_upload_bytes:
            limit_mb = self._max_upload_bytes // (1024 * 1024)
            self._dispatch(UploadRejected(
                ErrorRecord(ErrorKind.CLIENT, MSG_FILE_TOO_LARGE.format(limit_mb=limit_mb))
            ))
            return False

        image = UploadedImage(filename=filename, data=data, mime_type=mime_type)
        self._dispatch(UploadStarted(image))

        try:
            preview = build_preview(data)
        except PreviewError:
            logger.warning("Could not read uploaded image %s", filename, exc_info=True)
            self._dispatch(UploadFailed(ErrorRecord(ErrorKind.CLIENT, MSG_UNREADABLE_IMAGE)))
            return False

        self._dispatch(UploadFinished(preview))

        key = self._derive_key(image)
        self._dispatch(CacheKeyDerived(key))
        if key is not None:
            cached = self._cache.get(key)
            if cached is not None:
                logger.info("Loaded from cache: %s", key)
                self._dispatch(AnalyzeSucceeded(cached, from_cache=True))
        return True

    # -----------------------------------------------------------------
    # Analyze / retry / cache clear
    # -----------------------------------------------------------------

    def analyze(self) -> None:
        """
        Run the analysis for the current image, task and prompt.

        Serves the result from the cache when possible; otherwise calls the
        server and caches a successful answer.  Failures end up as an
        ErrorRecord in the state and never propagate.
        """
        state = self._state
        if state.image is None:
            self._dispatch(AnalyzeRejected(ErrorRecord(ErrorKind.CLIENT, MSG_NO_IMAGE)))
            return

        self._dispatch(AnalyzeStarted())

        key = state.cache_key
        if key is not None:
            cached = self._cache.get(key)
            if cached is not None:
                logger.info("Loaded from cache: %s", key)
                self._dispatch(AnalyzeSucceeded(cached, from_cache=True))
                return

        request = AnalysisRequest(
            image_bytes=state.image.data,
            mime_type=state.image.mime_type,
            prompt=state.prompt,
            task=state.task.value,
            filename=state.image.filename,
        )

        try:
            result = self._client.analyze(request)
        except Exception as exc:
            logger.error("Analysis error: %s", exc)
            self._dispatch(AnalyzeFailed(classify_failure(exc)))
            return

        if key is not None:
            self._cache.set(key, result)
        self._dispatch(AnalyzeSucceeded(result, from_cache=False))

    def retry(self) -> bool:
        """
        Re-run the analysis when the current error offers a retry.

        Returns:
            True if the analysis was re-invoked.
        """
        error = self._state.error
        if error is None or not error.retryable:
            return False
        self.analyze()
        return True

    def clear_cache(self) -> None:
        """Remove the cached result for the current key, if any."""
        key = self._state.cache_key
        if key is None:
            return
        self._cache.remove(key)
        logger.info("Cache cleared: %s", key)
        self._dispatch(CacheCleared())
