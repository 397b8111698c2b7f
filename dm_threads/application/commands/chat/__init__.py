"""Chat commands."""

from dm_threads.application.commands.chat.send_message import (
    SendMessageCommand,
    SendMessageHandler,
)

__all__ = [
    "SendMessageCommand",
    "SendMessageHandler",
]
