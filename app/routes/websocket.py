# app/routes/websocket.py
"""
WebSocket endpoints.

- /ws/rooms/{room_id} : flux des changements d'une salle. Chaque écriture du
  store touchant la salle (rooms / players / clues) produit un message
  {"type": "change", "payload": {"table", "event", "room_id", "row_id"}} ;
  le client recharge alors la table concernée.
- Ping/pong pour heartbeat, ACK générique pour les autres messages.
"""
from __future__ import annotations

import json

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from app.deps.services import get_ws_manager
from app.services.store import ROOMS

router = APIRouter()


@router.websocket("/ws/rooms/{room_id}")
async def room_stream(ws: WebSocket, room_id: str):
    manager = get_ws_manager(ws)
    service = ws.app.state.game_service
    if service.store.get(ROOMS, room_id) is None:
        await ws.close(code=4404)
        return

    await manager.connect(ws, room_id)
    await manager.send_json(ws, {"type": "subscribed", "room_id": room_id})
    try:
        while True:
            raw = await ws.receive_text()
            try:
                msg = json.loads(raw)
            except Exception:
                # Message non JSON -> ignore
                continue

            if msg.get("type") == "ping":
                await manager.send_json(ws, {"type": "pong"})
            else:
                await manager.send_json(ws, {"type": "ack", "received": msg})
    except WebSocketDisconnect:
        pass
    finally:
        await manager.disconnect(ws)
