"""Chat API — send a message, get the assistant's reply.

Learn: POST /chat stores two messages (the user's and the assistant's)
and broadcasts both, so every open tab of the user sees the exchange
appear live, not just the tab that sent it.

Provider failure → 502 and nothing is stored; the client can retry.
"""

from fastapi import APIRouter, Depends, HTTPException

from chathub.api.messages import get_message_service
from chathub.auth.dependencies import CurrentIdentity, get_current_user
from chathub.completion import CompletionProvider, get_completion_provider
from chathub.errors import GenerationError, InvalidMessageError
from chathub.schemas.message import ChatRequest, ChatResponse, MessageRead
from chathub.services.chat_service import ChatService
from chathub.services.message_service import MessageService

router = APIRouter(prefix="/chat")


def get_chat_service(
    messages: MessageService = Depends(get_message_service),
    provider: CompletionProvider = Depends(get_completion_provider),
) -> ChatService:
    return ChatService(messages, provider)


@router.post("", response_model=ChatResponse)
async def chat(
    body: ChatRequest,
    identity: CurrentIdentity = Depends(get_current_user),
    svc: ChatService = Depends(get_chat_service),
):
    try:
        exchange = await svc.send(identity.user_id, body.message)
    except InvalidMessageError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except GenerationError as e:
        raise HTTPException(
            status_code=502,
            detail=f"Failed to generate a response, please retry: {e}",
        )
    return ChatResponse(
        response=exchange.reply,
        user_message=MessageRead.model_validate(exchange.user_message),
        assistant_message=MessageRead.model_validate(exchange.assistant_message),
    )


@router.get("/history", response_model=list[MessageRead])
async def chat_history(
    identity: CurrentIdentity = Depends(get_current_user),
    messages: MessageService = Depends(get_message_service),
):
    """Same as GET /messages — the conversation, oldest first."""
    return await messages.history(identity.user_id)
