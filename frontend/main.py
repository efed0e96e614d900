# =============================================================================
# Multimodal Vision Demo - Client Entry Point
# =============================================================================
# Command-line front end for the proxy server.  Loads an image from disk,
# applies the selected task and prompt, runs the analysis through the
# AnalysisController (with the persistent local result cache), and prints the
# result, its metadata, and any error with an interactive retry for
# retryable kinds.
# =============================================================================

import argparse
import logging
import mimetypes
import sys
from datetime import datetime
from pathlib import Path

from config import get_config
from frontend.cache import ResultCache, SqliteStore
from frontend.client import AnalysisClient
from frontend.controller import AnalysisController
from frontend.state import ErrorKind, UIState
from shared.tasks import TASK_DESCRIPTIONS, Task

logger = logging.getLogger(__name__)


def render_state(state: UIState) -> None:
    """Print the result (or error) held in the state."""
    if state.error is not None:
        print(f"\nError: {state.error.kind.value}")
        print(f"  {state.error.message}")
        if state.error.kind == ErrorKind.QUOTA:
            print("  The API has usage limits. Please wait a few minutes before trying again.")
        return

    result = state.result
    if result is None:
        return

    header = "Results (cached result)" if state.from_cache else "Results"
    print("\n" + "=" * 60)
    print(f"  {header}")
    print("=" * 60)
    print(result.text)
    if result.error:
        print(f"\n  Error: {result.error}")
    if result.metadata is not None:
        meta = result.metadata
        print("-" * 60)
        print(f"  Model           : {meta.model}")
        print(f"  Processing time : {meta.processing_time}ms")
        print(f"  Task            : {meta.task}")
        if meta.timestamp:
            generated = datetime.fromtimestamp(meta.timestamp / 1000)
            print(f"  Generated       : {generated:%b %d, %I:%M %p}")
    print("=" * 60 + "\n")


def _ask_retry() -> bool:
    try:
        answer = input("Retry? [y/N] ")
    except EOFError:
        return False
    return answer.strip().lower() in ("y", "yes")


def main():
    """CLI entry point for the client front end."""
    parser = argparse.ArgumentParser(
        description="Multimodal Vision Demo — Client",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument("image", type=Path, help="Path of the image to analyze")
    parser.add_argument(
        "--task", type=str, default=Task.ANALYSIS.value,
        choices=[t.value for t in Task],
        help="Task to run; selects the default prompt",
    )
    parser.add_argument(
        "--prompt", type=str, default=None,
        help="Prompt text (overrides the task's default prompt)",
    )
    parser.add_argument(
        "--server-url", type=str, default=None,
        help="Server base URL (e.g., http://127.0.0.1:8000)",
    )
    parser.add_argument(
        "--clear-cache", action="store_true",
        help="Drop the cached result for this image/task/prompt before analyzing",
    )
    args = parser.parse_args()

    config = get_config()
    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
        datefmt="%H:%M:%S",
    )
    if args.server_url is not None:
        config.server_url = args.server_url

    try:
        data = args.image.read_bytes()
    except OSError as exc:
        print(f"Cannot read {args.image}: {exc}", file=sys.stderr)
        sys.exit(1)
    mime_type = mimetypes.guess_type(args.image.name)[0] or "application/octet-stream"

    task = Task(args.task)
    print(f"\nTask: {task.value} — {TASK_DESCRIPTIONS[task]}")

    store = SqliteStore(config.cache_db_path)
    controller = AnalysisController(
        client=AnalysisClient(config.server_url, timeout=config.client_timeout_seconds),
        cache=ResultCache(store),
        max_upload_bytes=config.max_upload_bytes,
        cache_namespace=config.cache_namespace,
    )
    controller.subscribe(lambda state: logger.debug("State: %s", state.loading.value))

    try:
        controller.select_task(task)
        if args.prompt is not None:
            controller.edit_prompt(args.prompt)

        if not controller.upload(args.image.name, data, mime_type):
            render_state(controller.state)
            sys.exit(1)

        if args.clear_cache:
            controller.clear_cache()

        print(f"Prompt: {controller.state.prompt}")
        print("Processing...")
        controller.analyze()
        render_state(controller.state)

        while controller.state.error is not None and controller.state.error.retryable:
            if not _ask_retry():
                break
            controller.retry()
            render_state(controller.state)
    finally:
        store.close()

    sys.exit(0 if controller.state.error is None else 1)


if __name__ == "__main__":
    main()
