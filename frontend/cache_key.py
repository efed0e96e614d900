# =============================================================================
# Multimodal Vision Demo - Cache Key Derivation
# =============================================================================
# Derives the deterministic key under which a result is cached.  The key
# combines a prefix of the image's SHA-256 digest, the task label and a
# normalized prefix of the prompt:
#
#     <namespace><sha256[:10]>-<task>-<prompt[:20], whitespace runs -> "-">
#
# Identical (image bytes, task, prompt prefix) triples always map to the
# same key.
# =============================================================================

import hashlib
import logging
import re
from typing import Optional

logger = logging.getLogger(__name__)

DEFAULT_NAMESPACE = "gemini-vision-cache-"
HASH_PREFIX_LENGTH = 10
PROMPT_PREFIX_LENGTH = 20

_WHITESPACE_RUN = re.compile(r"\s+")


def derive_cache_key(
    image_bytes: bytes,
    task: str,
    prompt: str,
    namespace: str = DEFAULT_NAMESPACE,
) -> Optional[str]:
    """
    Compute the cache key for an image, task and prompt.

    Args:
        image_bytes: Full content of the uploaded image.
        task:        Task label (e.g. "analysis").
        prompt:      Prompt text; only its first 20 characters matter.
        namespace:   Prefix shared by every key of this application.

    Returns:
        The key, or None when the image content cannot be hashed.  Callers
        treat None as "no caching" rather than as an error.
    """
    try:
        digest = hashlib.sha256(image_bytes).hexdigest()
    except (TypeError, ValueError):
        logger.warning("Failed to generate cache key", exc_info=True)
        return None

    task_label = getattr(task, "value", task)
    prompt_part = _WHITESPACE_RUN.sub("-", prompt[:PROMPT_PREFIX_LENGTH])
    return f"{namespace}{digest[:HASH_PREFIX_LENGTH]}-{task_label}-{prompt_part}"
