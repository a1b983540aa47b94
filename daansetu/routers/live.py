# daansetu/routers/live.py
import asyncio
import logging
from contextlib import aclosing

from fastapi import APIRouter, WebSocket, WebSocketDisconnect, status
from fastapi.encoders import jsonable_encoder

from daansetu.core.errors import AuthError, SubscriptionTimeoutError
from daansetu.core.security import user_from_token
from daansetu.services import live

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/ws", tags=["live"])


async def _push(websocket: WebSocket, stream) -> None:
    async for snapshot in stream:
        await websocket.send_json({"data": jsonable_encoder(snapshot)})


async def _until_closed(websocket: WebSocket) -> None:
    # clients never send anything; the only frame we expect is the close
    while (await websocket.receive())["type"] != "websocket.disconnect":
        pass


async def _serve(websocket: WebSocket, token: str, roles: tuple, make_stream) -> None:
    state = websocket.app.state
    try:
        user, _ = await user_from_token(state.repo, state.settings, token)
    except AuthError as ex:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION, reason=ex.message)
        return
    if roles and user.role not in roles:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION, reason="Role not allowed")
        return

    await websocket.accept()
    async with aclosing(make_stream(state.repo, state.feed, user)) as stream:
        try:
            snapshot = await live.first_snapshot(stream, state.settings.subscription_timeout_s)
        except SubscriptionTimeoutError as ex:
            await websocket.send_json({"error": ex.message})
            await websocket.close(code=status.WS_1011_INTERNAL_ERROR)
            return
        await websocket.send_json({"data": jsonable_encoder(snapshot)})

        pusher = asyncio.create_task(_push(websocket, stream))
        closer = asyncio.create_task(_until_closed(websocket))
        try:
            await asyncio.wait({pusher, closer}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            pusher.cancel()
            closer.cancel()
            await asyncio.gather(pusher, closer, return_exceptions=True)
        if pusher.done() and not pusher.cancelled():
            ex = pusher.exception()
            if ex is not None and not isinstance(ex, WebSocketDisconnect):
                raise ex
    logger.debug("subscriber %s disconnected", user.id)


@router.websocket("/donations/mine")
async def my_donations(websocket: WebSocket, token: str):
    await _serve(websocket, token, ("donor",), live.watch_user_donations)


@router.websocket("/donations/claimed")
async def claimed_donations(websocket: WebSocket, token: str):
    await _serve(websocket, token, ("ngo",), live.watch_claimed_donations)


@router.websocket("/notifications")
async def notifications(websocket: WebSocket, token: str):
    await _serve(websocket, token, (), live.watch_notifications)
