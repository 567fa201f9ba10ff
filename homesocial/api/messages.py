import asyncio
import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Request, WebSocket, WebSocketDisconnect
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from homesocial.dependencies import get_broker, get_store
from homesocial.errors import HomeSocialError, ListingValidationError
from homesocial.middleware.auth import require_session, websocket_session
from homesocial.middleware.rate_limit import limiter
from homesocial.models.auth import SessionUser
from homesocial.models.social import MessageCreate
from homesocial.services import social_service

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)

router = APIRouter(prefix="/threads", tags=["messages"])

# Websocket close codes (4000-4999 are free for applications)
WS_SIGN_IN_REQUIRED = 4401
WS_NOT_A_MEMBER = 4403


@router.get("")
@limiter.limit("60/minute")
async def get_threads(
    request: Request,
    user: SessionUser = Depends(require_session),
    store=Depends(get_store),
):
    """Threads the caller belongs to, newest first."""
    threads = await social_service.list_threads(store, user)
    return {"threads": threads}


@router.get("/{thread_id}/messages")
@limiter.limit("120/minute")
async def get_messages(
    request: Request,
    thread_id: UUID,
    user: SessionUser = Depends(require_session),
    store=Depends(get_store),
):
    """The newest 200 messages, oldest first."""
    messages = await social_service.load_messages(store, user, thread_id)
    return {"thread_id": str(thread_id), "messages": messages}


@router.post("/{thread_id}/messages")
@limiter.limit("60/minute")
async def post_message(
    request: Request,
    thread_id: UUID,
    message: MessageCreate,
    user: SessionUser = Depends(require_session),
    store=Depends(get_store),
    broker=Depends(get_broker),
):
    sent = await social_service.send_message(store, broker, user, thread_id, message)
    messages = await social_service.load_messages(store, user, thread_id)
    return JSONResponse(status_code=201, content={"message": sent, "messages": messages})


@router.websocket("/{thread_id}/ws")
async def thread_socket(
    websocket: WebSocket,
    thread_id: UUID,
    user: SessionUser | None = Depends(websocket_session),
    store=Depends(get_store),
    broker=Depends(get_broker),
):
    """
    Live thread view.

    Pushes `{"type": "message", "message": {...}}` for every message inserted
    into the thread, including the caller's own. Clients may also send
    `{"body": "..."}` frames instead of POSTing.
    """
    await websocket.accept()

    if user is None:
        await websocket.close(code=WS_SIGN_IN_REQUIRED, reason="Sign in required")
        return
    if not await store.is_thread_member(thread_id, user.uid):
        await websocket.close(code=WS_NOT_A_MEMBER, reason="Not a member of this thread")
        return

    async with broker.subscribe(thread_id) as queue:
        receiver = asyncio.create_task(receive_frames(websocket, store, broker, user, thread_id))
        try:
            while not receiver.done():
                next_message = asyncio.create_task(queue.get())
                done, _ = await asyncio.wait(
                    {next_message, receiver}, return_when=asyncio.FIRST_COMPLETED
                )
                if next_message not in done:
                    next_message.cancel()
                    break
                try:
                    await websocket.send_json({"type": "message", "message": next_message.result()})
                except (WebSocketDisconnect, RuntimeError, OSError) as e:
                    # the client went away between receive and send
                    logger.info(f"Websocket for thread {thread_id} closed while sending: {e!r}")
                    break
        finally:
            receiver.cancel()

    if receiver.done() and not receiver.cancelled() and receiver.exception() is not None:
        raise receiver.exception()

    logger.info(f"User {user.uid} left thread {thread_id}")


async def receive_frames(websocket: WebSocket, store, broker, user: SessionUser, thread_id) -> None:
    """Read client frames until disconnect; each valid frame is sent as a message."""
    try:
        while True:
            try:
                frame = await websocket.receive_json()
                message = MessageCreate.model_validate(frame)
            except ValidationError as e:
                await websocket.send_json(
                    {"type": "error", "detail": ListingValidationError.from_pydantic(e).message}
                )
                continue
            except ValueError:
                await websocket.send_json({"type": "error", "detail": "Frames must be JSON"})
                continue

            try:
                await social_service.send_message(store, broker, user, thread_id, message)
            except HomeSocialError as e:
                await websocket.send_json({"type": "error", "detail": e.message})
    except WebSocketDisconnect:
        logger.info(f"Websocket for thread {thread_id} disconnected")
