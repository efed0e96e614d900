# =============================================================================
# Multimodal Vision Demo - Server Entry Point
# =============================================================================
# CLI entry point for starting the FastAPI proxy server in front of the hosted
# multimodal model.
# =============================================================================

import argparse
import logging

import uvicorn

from config import get_config


def main():
    """Parse CLI arguments, apply overrides, and start the server."""
    parser = argparse.ArgumentParser(
        description="Multimodal Vision Demo — Proxy Server",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument("--host", type=str, default=None, help="Server bind address")
    parser.add_argument("--port", type=int, default=None, help="Server bind port")
    parser.add_argument("--model", type=str, default=None, help="Provider model identifier")
    args = parser.parse_args()

    config = get_config()

    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
        datefmt="%H:%M:%S",
    )

    if args.host is not None:
        config.server_host = args.host
    if args.port is not None:
        config.server_port = args.port
    if args.model is not None:
        config.model_name = args.model

    config.server_url = f"http://{config.server_host}:{config.server_port}"

    print("\n" + "=" * 60)
    print("  Multimodal Vision Demo — Proxy Server")
    print("=" * 60)
    print(f"  Model      : {config.model_name}")
    print(f"  API key    : {'configured' if config.provider_configured else 'MISSING'}")
    print(f"  Timeout    : {config.provider_timeout_seconds:g}s")
    print(f"  Max upload : {config.max_upload_bytes} bytes")
    print(f"  Listening  : {config.server_host}:{config.server_port}")
    print("=" * 60 + "\n")

    uvicorn.run(
        "server.app:app",
        host=config.server_host,
        port=config.server_port,
        log_level=config.log_level.lower(),
    )


if __name__ == "__main__":
    main()
