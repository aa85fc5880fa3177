"""Replies to simple chat commands such as `!ping`."""

import logging
from typing import Dict, Optional

from .events import MessageReceived
from .exceptions import GatewayError, TransportError
from .models import TextPayload
from .supervisor import SessionSupervisor

logger = logging.getLogger(__name__)

DEFAULT_COMMANDS = {"!ping": "pong"}


class CommandResponder:
    """Answers inbound command messages in the chat they came from."""

    def __init__(self, supervisor: SessionSupervisor, commands: Optional[Dict[str, str]] = None):
        self._supervisor = supervisor
        self._commands = {k.lower(): v for k, v in (commands or DEFAULT_COMMANDS).items()}

    def reply_for(self, message: MessageReceived) -> Optional[str]:
        if message.from_me or not message.text:
            return None
        return self._commands.get(message.text.strip().lower())

    async def __call__(self, message: MessageReceived) -> None:
        reply = self.reply_for(message)
        if reply is None:
            return
        try:
            await self._supervisor.send(message.chat_id, TextPayload(text=reply))
        except (GatewayError, TransportError) as e:
            logger.warning(f"Could not answer {message.text!r} in {message.chat_id}: {e}")
