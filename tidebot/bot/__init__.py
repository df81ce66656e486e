"""
Discord Bot Layer.

Turns Discord mentions into assistant turns: builds the user message,
continues the conversation the user replied to, and posts the reply with
any generated images.
"""

from tidebot.bot.client import TidebotBot

__all__ = ["TidebotBot"]
