"""Chat platforms other than Discord (see tidebot.bot)."""

from tidebot.platform.cli import CliPlatform

__all__ = ["CliPlatform"]
