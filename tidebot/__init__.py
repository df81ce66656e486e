"""
Tidebot - conversational assistant orchestration for chat platforms.

This package drives LLM conversations with tool calling, keeps conversation
history in pluggable storage, and connects to Discord or a terminal.
"""

__version__ = "0.1.0"
