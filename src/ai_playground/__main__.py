"""CLI entrypoint for AI Playground."""

from __future__ import annotations

import argparse
import asyncio
from collections.abc import Sequence
from importlib import metadata
from pathlib import Path
import sys
from typing import Any

from .config import ensure_config_dir, load_config
from .exceptions import GenerationError
from .logging_utils import configure_logging
from .pipeline import FAILURE_REPLY, ChatPipeline, Notice, build_pipeline


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ai-playground",
        description="AI Playground - chat with a generation backend from the terminal",
    )
    parser.add_argument(
        "--version", action="store_true", help="Print version and exit"
    )
    parser.add_argument("--config", help="Path to an alternative config.toml")
    parser.add_argument(
        "--list", action="store_true", help="List conversations, newest first"
    )
    parser.add_argument(
        "--new", action="store_true", help="Start a new conversation"
    )
    parser.add_argument(
        "--conversation", metavar="ID", help="Continue the conversation with this id"
    )
    parser.add_argument("--delete", metavar="ID", help="Delete a conversation")
    parser.add_argument(
        "--attach", metavar="FILE", help="Attach an image or plain-text file"
    )
    parser.add_argument(
        "--type",
        dest="media_type",
        metavar="MEDIA_TYPE",
        help="Declared media type of --attach (guessed from the name by default)",
    )
    parser.add_argument("prompt", nargs="*", help="Prompt text")
    return parser


def _print_notice(notice: Notice) -> None:
    print(f"{notice.title}: {notice.message}", file=sys.stderr)


def _print_conversations(pipeline: ChatPipeline) -> None:
    store = pipeline.store
    if not store.conversations:
        print("No chats yet.")
        return
    for conversation in store.conversations:
        marker = "*" if conversation.id == store.active_id else " "
        print(
            f"{marker} {conversation.id}  {conversation.title} "
            f"({len(conversation.messages)} messages)"
        )


async def _run(args: argparse.Namespace, config: dict[str, Any]) -> int:
    pipeline = build_pipeline(config)
    pipeline.on_notice(_print_notice)
    store = pipeline.store

    if args.delete and not store.delete_conversation(args.delete):
        print(f"Unknown conversation: {args.delete}", file=sys.stderr)
        return 1
    if args.new:
        store.create_conversation()
    elif args.conversation and not store.select_conversation(args.conversation):
        print(f"Unknown conversation: {args.conversation}", file=sys.stderr)
        return 1
    if args.list:
        _print_conversations(pipeline)

    prompt = " ".join(args.prompt)
    if not prompt and not args.attach:
        return 0

    if config["backend"]["pull_model_on_start"]:
        if not await pipeline.client.check_connection():
            print(
                f"Error: cannot reach generation backend at {pipeline.client.host}",
                file=sys.stderr,
            )
            return 1
        try:
            await pipeline.client.ensure_model_ready(pull_if_missing=True)
        except GenerationError as exc:
            print(f"Error: {exc}", file=sys.stderr)
            return 1

    if args.attach and await pipeline.attach_file(args.attach, args.media_type) is None:
        return 1

    reply = await pipeline.submit(prompt)
    if reply is None:
        return 1
    print(reply.content)
    return 1 if reply.content == FAILURE_REPLY else 0


def main(argv: Sequence[str] | None = None) -> int:
    """Load configuration, handle CLI flags, and run one submission."""

    parser = _build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)

    if args.version:
        try:
            version = metadata.version("ai-playground")
        except metadata.PackageNotFoundError:
            version = "0.0.0"
        print(f"ai-playground {version}")
        return 0

    ensure_config_dir()
    config = load_config(Path(args.config).expanduser() if args.config else None)
    configure_logging(config["logging"])
    return asyncio.run(_run(args, config))


if __name__ == "__main__":
    sys.exit(main())
