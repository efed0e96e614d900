# =============================================================================
# Multimodal Vision Demo - Task Catalogue
# =============================================================================
# The four fixed request intents a user can pick. Each task selects a default
# prompt (applied whenever the task is selected) and carries a short
# description shown next to the selector.
# =============================================================================

from enum import Enum
from typing import Dict


class Task(str, Enum):
    """Request intents supported by the demo."""

    ANALYSIS = "analysis"
    QA = "qa"
    EXTRACTION = "extraction"
    CREATIVE = "creative"


DEFAULT_PROMPTS: Dict[Task, str] = {
    Task.ANALYSIS: "Describe this image in detail.",
    Task.QA: "What can you tell me about this image?",
    Task.EXTRACTION: "Extract all text visible in this image.",
    Task.CREATIVE: "Create a short story inspired by this image.",
}

TASK_DESCRIPTIONS: Dict[Task, str] = {
    Task.ANALYSIS: "Detailed description and analysis of the image content.",
    Task.QA: "Ask questions about the image and get detailed answers.",
    Task.EXTRACTION: "Extract text visible in the image.",
    Task.CREATIVE: "Generate creative content inspired by the image.",
}


def default_prompt(task: Task) -> str:
    """Return the prompt a task resets the prompt field to."""
    return DEFAULT_PROMPTS[Task(task)]
