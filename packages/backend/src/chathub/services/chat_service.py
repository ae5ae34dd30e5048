"""Chat service — one user message in, user turn + assistant turn out.

Learn: The completion call happens BEFORE anything is written:
1. Load the user's visible history (oldest first) as prompt turns
2. Ask the provider for a reply (GenerationError or a blank reply → abort,
   nothing stored)
3. Persist + broadcast the user's message
4. Persist + broadcast the assistant's reply

So a provider failure never leaves a dangling unanswered user message, and
the client can simply retry the same request.
"""

from dataclasses import dataclass
from typing import Any

import structlog

from chathub.completion.base import CompletionProvider, Turn
from chathub.errors import GenerationError
from chathub.services.message_service import MessageService
from chathub.store.mutations import validate_content

logger = structlog.get_logger()


@dataclass
class ChatExchange:
    """Result of one chat round-trip."""

    user_message: Any
    assistant_message: Any

    @property
    def reply(self) -> str:
        return self.assistant_message.content


class ChatService:
    def __init__(self, messages: MessageService, provider: CompletionProvider):
        self.messages = messages
        self.provider = provider

    async def send(self, user_id: int, content: str) -> ChatExchange:
        validate_content(content)

        history = await self.messages.history(user_id)
        turns: list[Turn] = [{"role": m.role, "content": m.content} for m in history]
        turns.append({"role": "user", "content": content})

        reply = await self.provider.complete(turns)
        if not isinstance(reply, str) or not reply.strip():
            raise GenerationError(f"Provider '{self.provider.name}' returned an empty reply")

        user_msg = await self.messages.create(user_id, content, role="user")
        assistant_msg = await self.messages.create(user_id, reply, role="assistant")

        logger.info(
            "chat.exchange_completed",
            user_id=user_id,
            provider=self.provider.name,
            history_turns=len(history),
            user_message_id=user_msg.id,
            assistant_message_id=assistant_msg.id,
        )
        return ChatExchange(user_message=user_msg, assistant_message=assistant_msg)
