"""
Live updates over a WebSocket.

Client messages:
    {"type": "auth", "access_token": "<jwt>" | null}
    {"type": "switch_account", "account_id": "<uuid>"}

Server messages:
    {"type": "identity", "state": ..., "user_info": {...} | null}
    {"type": "change", "event": {"type", "table", "id", "value", "previous_value"}}
    {"type": "error", "detail": "..."}

Each connection runs its own SessionController; change events are only
forwarded when they belong to the connection's current account or user.
"""

import asyncio
import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, WebSocket, WebSocketDisconnect
from postgrest.exceptions import APIError

from taskboard.core.context import AppContext, get_context
from taskboard.core.errors import TaskboardError
from taskboard.core.events import ChangeEvent
from taskboard.modules.auth.service import AuthService
from taskboard.modules.identity.schemas import AuthSession, IdentityUpdate, UserInfo
from taskboard.modules.identity.session import SessionController

logger = logging.getLogger(__name__)

router = APIRouter(tags=["events"])

OUTBOX_SIZE = 1000


def is_visible(event: ChangeEvent, info: Optional[UserInfo]) -> bool:
    """True if a change belongs to the given identity's user row or current account"""
    if info is None:
        return False
    if event.table == "user":
        return event.id == info.user.id
    if info.account is None:
        return False
    if event.table == "account":
        return event.id == info.account.id
    row = event.value or event.previous_value or {}
    return row.get("account_id") == info.account.id


class EventsConnection:
    def __init__(self, websocket: WebSocket, context: AppContext):
        self.websocket = websocket
        self.context = context
        self.auth_service = AuthService(context.client)
        self.session = SessionController(
            context.resolver,
            debounce_seconds=context.settings.auth_debounce_seconds,
        )

    async def run(self) -> None:
        async with self.context.store.events.listen(maxsize=OUTBOX_SIZE) as outbox:
            subscription = self.session.subscribe(outbox.put_nowait)
            receiver = asyncio.ensure_future(self._receive())
            sender = asyncio.ensure_future(self._send(outbox))
            try:
                done, pending = await asyncio.wait({receiver, sender}, return_when=asyncio.FIRST_COMPLETED)
                for task in pending:
                    task.cancel()
                for task in done:
                    task.result()
            finally:
                subscription.unsubscribe()
                self.session.close()

    async def _receive(self) -> None:
        try:
            while True:
                try:
                    message = await self.websocket.receive_json()
                except ValueError:
                    await self._send_error("Messages must be JSON objects")
                    continue
                await self.handle_message(message)
        except WebSocketDisconnect:
            logger.debug("Events client disconnected")

    async def _send(self, outbox: "asyncio.Queue[Any]") -> None:
        while True:
            item = await outbox.get()
            if isinstance(item, IdentityUpdate):
                await self.websocket.send_json({"type": "identity", **item.model_dump(mode="json")})
                if item.error:
                    await self._send_error(item.error)
            elif isinstance(item, ChangeEvent) and is_visible(item, self.session.user_info):
                await self.websocket.send_json({"type": "change", "event": item.model_dump(mode="json")})

    async def _send_error(self, detail: str) -> None:
        await self.websocket.send_json({"type": "error", "detail": detail})

    async def handle_message(self, message: Dict[str, Any]) -> None:
        message_type = message.get("type") if isinstance(message, dict) else None
        if message_type == "auth":
            await self._handle_auth(message.get("access_token"))
        elif message_type == "switch_account":
            await self._handle_switch(message.get("account_id"))
        else:
            await self._send_error(f"Unknown message type: {message_type}")

    async def _handle_switch(self, account_id: Optional[str]) -> None:
        info = None
        if account_id:
            try:
                info = await self.session.switch_account(account_id)
            except (TaskboardError, APIError) as e:
                logger.warning(f"Account switch to {account_id} failed: {e}")
        if info is None:
            await self._send_error("Unable to switch to that account")

    async def _handle_auth(self, token: Optional[str]) -> None:
        if not token:
            self.session.notify("SIGNED_OUT", None)
            return
        loop = asyncio.get_running_loop()
        try:
            auth_user = await loop.run_in_executor(None, self.auth_service.get_current_user, token)
        except HTTPException as e:
            await self._send_error(e.detail)
            return
        self.session.notify("SIGNED_IN", AuthSession(access_token=token, user=auth_user))


@router.websocket("/events")
async def events_socket(websocket: WebSocket, context: AppContext = Depends(get_context)):
    await websocket.accept()
    await EventsConnection(websocket, context).run()
