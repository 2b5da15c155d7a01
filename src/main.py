# src/main.py — v3
"""CLI entry point — ask, models commands.

Usage:
    pagepilot ask "<prompt>" [options]
    pagepilot models
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import TYPE_CHECKING

from pagepilot.version import __version__

if TYPE_CHECKING:
    from pagepilot.config.settings import Settings

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    from pagepilot.config.settings import ConfigurationError, load_settings

    try:
        args.settings = load_settings()
    except ConfigurationError as exc:
        print(f"Invalid configuration: {exc}", file=sys.stderr)
        return 2

    _setup_logging(args.verbose, args.settings)

    if not hasattr(args, "func"):
        parser.print_help()
        return 1

    try:
        return asyncio.run(args.func(args))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130
    except Exception as exc:
        logger.error("Fatal error: %s", exc, exc_info=args.verbose)
        return 1


def _build_parser() -> argparse.ArgumentParser:
    """Build CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="pagepilot",
        description=f"pagepilot v{__version__} — LLM provider layer for browser automation",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command")

    # --- ask ---
    p_ask = subparsers.add_parser("ask", help="Run a single chat completion")
    p_ask.add_argument("prompt", help="User message")
    p_ask.add_argument(
        "-m", "--model", default=None,
        help="Model name (default: DEFAULT_MODEL setting)",
    )
    p_ask.add_argument("--system", default=None, help="Optional system message")
    p_ask.add_argument(
        "--image", type=Path, default=None,
        help="Screenshot to attach to the request",
    )
    p_ask.add_argument(
        "--image-description", default=None,
        help="Text sent alongside the screenshot",
    )
    p_ask.add_argument(
        "--backend-url", default=None,
        help="Route the request through this relay (overrides the model's provider)",
    )
    p_ask.add_argument(
        "--temperature", type=float, default=None,
        help="Sampling temperature",
    )
    p_ask.add_argument(
        "--no-cache", action="store_true",
        help="Disable the response cache for this call",
    )
    p_ask.add_argument(
        "--json", dest="as_json", action="store_true",
        help="Print the full normalized response as JSON",
    )
    p_ask.set_defaults(func=_cmd_ask)

    # --- models ---
    p_models = subparsers.add_parser("models", help="List supported models")
    p_models.set_defaults(func=_cmd_models)

    return parser


async def _cmd_ask(args: argparse.Namespace) -> int:
    """Send one prompt through the configured provider."""
    from pagepilot.llm.models import ChatCompletionOptions, ChatImage, ChatMessage
    from pagepilot.llm.provider import LLMProvider

    settings = args.settings
    if args.no_cache:
        settings = settings.model_copy(update={"enable_caching": False})

    messages: list[ChatMessage] = []
    if args.system:
        messages.append(ChatMessage(role="system", content=args.system))
    messages.append(ChatMessage(role="user", content=args.prompt))

    image = None
    if args.image is not None:
        if not args.image.exists():
            logger.error("Image not found: %s", args.image)
            return 1
        image = ChatImage(buffer=args.image.read_bytes(), description=args.image_description)

    client_options: dict[str, str] = {}
    backend_url = args.backend_url or settings.backend_url
    if backend_url:
        client_options["backend_url"] = backend_url

    provider = LLMProvider.from_settings(settings)
    client = provider.get_client(args.model or settings.default_model, client_options or None)
    options = ChatCompletionOptions(
        messages=messages, image=image, temperature=args.temperature,
    )

    try:
        response = await client.create_chat_completion(options)
    finally:
        await provider.clean_request_cache(options.request_id)

    if args.as_json:
        data = response.model_dump(mode="json") if hasattr(response, "model_dump") else response
        print(json.dumps(data, indent=2))
    else:
        print(_response_text(response))
    return 0


async def _cmd_models(args: argparse.Namespace) -> int:
    """Print supported models and their providers."""
    from pagepilot.llm.provider import available_models

    for model, provider in available_models().items():
        print(f"  {model:32s} {provider}")
    return 0


def _response_text(response: object) -> str:
    """Best-effort text of a normalized or proxied response."""
    content = getattr(response, "content", None)
    if isinstance(content, str):
        return content
    if isinstance(response, dict):
        choices = response.get("choices") or []
        if choices:
            return str(choices[0].get("message", {}).get("content", ""))
    return json.dumps(response, default=str)


def _setup_logging(verbose: bool, settings: Settings) -> None:
    """Configure logging for CLI usage; --verbose forces DEBUG text output."""
    from pagepilot.logging.logger import setup_logging

    setup_logging(
        level="DEBUG" if verbose else settings.log_level,
        log_format="text" if verbose else settings.log_format,
        log_file=settings.log_file,
        rotation=settings.log_rotation,
        retention=settings.log_retention,
    )
    # Quiet noisy libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


if __name__ == "__main__":
    sys.exit(main())
