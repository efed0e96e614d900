# =============================================================================
# Multimodal Vision Demo - UI State Machine
# =============================================================================
# The whole client form state (task, prompt, uploaded image, loading state,
# result, error, cache key) lives in one immutable UIState.  Every change is
# an action applied by the pure ``reduce`` function, so LoadingState
# transitions can be tested without any I/O:
#
#     idle --UploadStarted--> uploading --UploadFinished/UploadFailed--> idle
#     idle --AnalyzeStarted--> analyzing --AnalyzeSucceeded/AnalyzeFailed--> idle
# =============================================================================

from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional, Union

from shared.schemas import AnalysisResult
from shared.tasks import Task, default_prompt


class LoadingState(str, Enum):
    IDLE = "idle"
    UPLOADING = "uploading"
    ANALYZING = "analyzing"


class ErrorKind(str, Enum):
    """Client-side error kinds shown to the user."""

    CLIENT = "client"
    SERVER = "server"
    NETWORK = "network"
    TIMEOUT = "timeout"
    QUOTA = "quota"


RETRYABLE_KINDS = frozenset({ErrorKind.NETWORK, ErrorKind.TIMEOUT, ErrorKind.SERVER})


@dataclass(frozen=True)
class ErrorRecord:
    kind: ErrorKind
    message: str

    @property
    def retryable(self) -> bool:
        """Whether a retry action is offered for this error."""
        return self.kind in RETRYABLE_KINDS


@dataclass(frozen=True)
class UploadedImage:
    filename: str
    data: bytes
    mime_type: str


@dataclass(frozen=True)
class UIState:
    task: Task = Task.ANALYSIS
    prompt: str = default_prompt(Task.ANALYSIS)
    image: Optional[UploadedImage] = None
    preview: Optional[str] = None
    loading: LoadingState = LoadingState.IDLE
    result: Optional[AnalysisResult] = None
    from_cache: bool = False
    error: Optional[ErrorRecord] = None
    cache_key: Optional[str] = None


# ---------------------------------------------------------------------------
# Actions
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TaskSelected:
    task: Task


@dataclass(frozen=True)
class PromptEdited:
    prompt: str


@dataclass(frozen=True)
class UploadRejected:
    error: ErrorRecord


@dataclass(frozen=True)
class UploadStarted:
    image: UploadedImage


@dataclass(frozen=True)
class UploadFinished:
    preview: str


@dataclass(frozen=True)
class UploadFailed:
    error: ErrorRecord


@dataclass(frozen=True)
class CacheKeyDerived:
    cache_key: Optional[str]


@dataclass(frozen=True)
class AnalyzeRejected:
    error: ErrorRecord


@dataclass(frozen=True)
class AnalyzeStarted:
    pass


@dataclass(frozen=True)
class AnalyzeSucceeded:
    result: AnalysisResult
    from_cache: bool = False


@dataclass(frozen=True)
class AnalyzeFailed:
    error: ErrorRecord


@dataclass(frozen=True)
class CacheCleared:
    pass


Action = Union[
    TaskSelected,
    PromptEdited,
    UploadRejected,
    UploadStarted,
    UploadFinished,
    UploadFailed,
    CacheKeyDerived,
    AnalyzeRejected,
    AnalyzeStarted,
    AnalyzeSucceeded,
    AnalyzeFailed,
    CacheCleared,
]


def reduce(state: UIState, action: Action) -> UIState:
    """
    Apply an action to the UI state.

    Args:
        state:  Current state.
        action: One of the action dataclasses above.

    Returns:
        The new state; ``state`` itself is never modified.

    Raises:
        TypeError: For an unknown action type.
    """
    if isinstance(action, TaskSelected):
        # Selecting a task always discards prompt edits.
        return replace(state, task=action.task, prompt=default_prompt(action.task))

    if isinstance(action, PromptEdited):
        return replace(state, prompt=action.prompt)

    if isinstance(action, (UploadRejected, AnalyzeRejected)):
        return replace(state, error=action.error)

    if isinstance(action, UploadStarted):
        return replace(
            state,
            image=action.image,
            preview=None,
            loading=LoadingState.UPLOADING,
            result=None,
            from_cache=False,
            error=None,
            cache_key=None,
        )

    if isinstance(action, UploadFinished):
        return replace(state, preview=action.preview, loading=LoadingState.IDLE)

    if isinstance(action, UploadFailed):
        return replace(state, loading=LoadingState.IDLE, error=action.error)

    if isinstance(action, CacheKeyDerived):
        return replace(state, cache_key=action.cache_key)

    if isinstance(action, AnalyzeStarted):
        return replace(state, loading=LoadingState.ANALYZING, error=None)

    if isinstance(action, AnalyzeSucceeded):
        return replace(
            state,
            loading=LoadingState.IDLE,
            result=action.result,
            from_cache=action.from_cache,
            error=None,
        )

    if isinstance(action, AnalyzeFailed):
        return replace(state, loading=LoadingState.IDLE, error=action.error)

    if isinstance(action, CacheCleared):
        return replace(state, from_cache=False)

    raise TypeError(f"Unknown action: {action!r}")
