"""
Tidebot CLI entry point.

Provides command-line interface for running the bot and utility commands.
"""

import argparse
import asyncio
import sys
from pathlib import Path

from tidebot import __version__
from tidebot.components import AssistantComponents
from tidebot.config.logging import get_logger, setup_logging
from tidebot.config.settings import Settings, load_settings
from tidebot.conversation.messages import UserMessage
from tidebot.errors import EngineError


def create_parser() -> argparse.ArgumentParser:
    """Create and configure argument parser."""
    parser = argparse.ArgumentParser(
        prog="tidebot",
        description="Conversational assistant with tool calling for Discord and the terminal",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"Tidebot {__version__}",
    )

    parser.add_argument(
        "--env-file",
        type=Path,
        default=None,
        help="Path to .env file (default: .env in current directory)",
    )

    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default=None,
        help="Override logging level from config",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    subparsers.add_parser(
        "run",
        help="Run the Discord bot",
    )

    subparsers.add_parser(
        "chat",
        help="Chat with the assistant in the terminal (Ctrl-D to quit)",
    )

    ask_parser = subparsers.add_parser(
        "ask",
        help="Ask a single question and print the reply",
    )
    ask_parser.add_argument(
        "question",
        help='Question to ask, e.g. "What time is it?"',
    )
    ask_parser.add_argument(
        "--image",
        action="append",
        default=[],
        metavar="URL",
        help="Attach an image URL to the question (repeatable)",
    )

    subparsers.add_parser(
        "config",
        help="Show current configuration",
    )

    return parser


def cmd_config(settings: Settings) -> int:
    """Show current configuration."""
    logger = get_logger(__name__)

    logger.info("\n=== Tidebot Configuration ===\n")
    logger.info(f"Environment: {settings.environment}")
    logger.info(f"Log Level: {settings.log_level}")
    logger.info(f"Log File: {settings.log_file or 'None (console only)'}")
    logger.info(f"\nSystem Role File: {settings.assistant.system_role_file or 'None (inline)'}")
    logger.info(f"Sensitive Marker: {settings.assistant.sensitive_marker or 'None (disabled)'}")
    logger.info(f"\nLLM Model: {settings.llm.model}")
    logger.info(f"LLM API Key: {'Set' if settings.llm.api_key else 'Not set'}")
    logger.info(f"LLM API Base: {settings.llm.api_base or 'Provider default'}")
    logger.info(f"Structured Output: {settings.llm.structured_output}")
    logger.info(f"\nStorage Backend: {settings.storage.backend}")
    if settings.storage.backend == "sqlite":
        logger.info(f"SQLite Path: {settings.storage.sqlite_path}")
    logger.info(f"\nBot Name: {settings.bot.name}")
    logger.info(f"Bot Token: {'Set' if settings.bot.token else 'Not set'}")
    logger.info(f"Allowed Channels: {settings.bot.allowed_channel_ids or 'All'}")
    logger.info(f"Max Reply Length: {settings.bot.max_length}")
    logger.info("\nTools:")
    logger.info(f"  self_info: {settings.tools.self_info}")
    logger.info(f"  local_info: {settings.tools.local_info}")
    logger.info(f"  image_generator: {settings.tools.image_generator}"
                + (f" ({settings.tools.image_model})" if settings.tools.image_generator else ""))

    return 0


def cmd_run(settings: Settings) -> int:
    """Start the Discord bot."""
    logger = get_logger(__name__)

    if not settings.bot.token:
        logger.error(
            "Discord bot token not set. Add BOT__TOKEN=<your-token> to your .env file."
        )
        return 1

    if not settings.llm.api_key:
        logger.warning(
            "LLM API key not set (LLM__API_KEY). "
            "The bot will start, relying on provider environment variables for credentials."
        )

    from tidebot.bot import TidebotBot

    bot = TidebotBot(settings)
    logger.info(f"Starting {settings.bot.name}...")
    # log_handler=None: disable discord.py's default logging setup and use ours
    bot.run(settings.bot.token, log_handler=None)
    return 0


async def cmd_chat(settings: Settings) -> int:
    """Interactive terminal chat."""
    from tidebot.platform.cli import CliPlatform

    factory = AssistantComponents(settings)
    async with factory.create_storage() as storage:
        assistant = await factory.create_assistant(storage)
        print(f"Chatting with {settings.bot.name} ({settings.llm.model}). Ctrl-D to quit.")
        await CliPlatform(assistant).run()
    return 0


async def cmd_ask(args, settings: Settings) -> int:
    """
    Ask one question in a fresh conversation and print the reply.

    Returns:
        Exit code (0 for success, 1 for error)
    """
    from tidebot.platform.cli import format_update

    factory = AssistantComponents(settings)
    async with factory.create_storage() as storage:
        assistant = await factory.create_assistant(storage)
        user_message = UserMessage.from_text(args.question, image_urls=args.image)
        try:
            update = await assistant.process_conversation(
                assistant.new_conversation(), user_message
            )
        except EngineError as e:
            print(f"\nError: {e}", file=sys.stderr)
            if e.origin == "llm":
                print("Tip: Set LLM__API_KEY and LLM__MODEL in your .env file.", file=sys.stderr)
            return 1

    print(format_update(update))
    return 0


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    # Load settings
    try:
        settings = load_settings(env_file=args.env_file)
    except Exception as e:
        print(f"Error loading settings: {e}", file=sys.stderr)
        return 1

    # Override log level if specified
    if args.log_level:
        settings.log_level = args.log_level

    # Setup logging
    setup_logging(settings)

    # Execute command
    if args.command == "config":
        return cmd_config(settings)
    elif args.command == "run":
        return cmd_run(settings)
    elif args.command == "chat":
        return asyncio.run(cmd_chat(settings))
    elif args.command == "ask":
        return asyncio.run(cmd_ask(args, settings))
    else:
        # Default: show help
        parser.print_help()
        return 0


if __name__ == "__main__":
    sys.exit(main())
