"""Stateful chat sessions grounded in extracted catalog records."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from carcatalog.models import ChatMessage

if TYPE_CHECKING:
    from carcatalog.gateway.service import ExtractionGateway

logger = logging.getLogger(__name__)


class ChatSession:
    """A conversation whose system prompt embeds the catalog data.

    History is only extended when a turn succeeds, so a failed question can
    simply be asked again.
    """

    def __init__(self, gateway: ExtractionGateway, system_prompt: str) -> None:
        self._gateway = gateway
        self.system_prompt = system_prompt
        self.history: list[ChatMessage] = []

    async def send(self, message: str) -> str:
        """Ask *message* and return the model's answer."""
        messages = [{"role": m.role, "content": m.content} for m in self.history]
        messages.append({"role": "user", "content": message})

        answer = await self._gateway.complete(
            task="chat",
            messages=messages,
            timeout=self._gateway.settings.chat_timeout_seconds,
            system=self.system_prompt,
        )

        self.history.append(ChatMessage(role="user", content=message))
        self.history.append(ChatMessage(role="assistant", content=answer))
        logger.debug("Chat turn %d answered", len(self.history) // 2)
        return answer
