"""Command line interface: send a prompt to any configured provider.

Usage:
    unillm "the color of the sky is" --service bedrock-mistral
    unillm "tell me a story" --model claude-3-opus-20240229 --stream --usage
"""

import argparse
import asyncio
import sys

from .client import LLMClient
from .errors import UniLLMError, get_user_friendly_message
from .logging_config import get_logger, setup_logging

logger = get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="unillm",
        description="Send a prompt to a hosted LLM through one interface",
    )
    parser.add_argument("prompt", help="User message to send")
    parser.add_argument("--service", help="Provider name from config (e.g. bedrock-mistral, anthropic)")
    parser.add_argument("--model", help="Provider model identifier")
    parser.add_argument("--system", help="System prompt to prepend")
    parser.add_argument("--max-tokens", type=int, dest="max_tokens")
    parser.add_argument("--temperature", type=float)
    parser.add_argument("--stream", action="store_true", help="Print the reply as it arrives")
    parser.add_argument("--usage", action="store_true", help="Print token usage to stderr")
    parser.add_argument("--log-level", default="WARNING", dest="log_level",
                        choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    return parser


def _print_usage(record):
    print(
        f"usage: prompt_tokens={record['prompt_tokens']} "
        f"completion_tokens={record['completion_tokens']}",
        file=sys.stderr,
    )


async def run(args: argparse.Namespace) -> None:
    options = {
        key: value
        for key, value in (
            ("service", args.service),
            ("model", args.model),
            ("max_tokens", args.max_tokens),
            ("temperature", args.temperature),
        )
        if value is not None
    }
    if args.stream:
        options["stream"] = True
    if args.usage:
        options["usage"] = _print_usage

    llm = LLMClient(**options)
    if args.system:
        llm.system(args.system)

    reply = await llm.chat(args.prompt)
    if args.stream:
        async for fragment in reply:
            sys.stdout.write(fragment)
            sys.stdout.flush()
        sys.stdout.write("\n")
    else:
        print(reply)


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(level=args.log_level)

    try:
        asyncio.run(run(args))
    except UniLLMError as e:
        logger.debug("Request failed", exc_info=True)
        print(get_user_friendly_message(e), file=sys.stderr)
        return 1
    return 0
