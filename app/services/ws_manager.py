# app/services/ws_manager.py
"""
Service: ws_manager.py
- Mapping room_id -> sockets ET socket -> room_id (ws_to_room).
- Pont store -> WebSocket : chaque changement (rooms/players/clues) est relayé
  aux sockets de la salle concernée sous forme {"type": "change", "payload": {...}}.
  Les clients re-chargent alors la table concernée (pas de diff incrémental).
- Snapshots immuables pour éviter "set changed size during iteration".
- Admin: stats(), close_all().
"""
from __future__ import annotations
from typing import Dict, Set, Any, Optional
from dataclasses import dataclass, field
from threading import RLock
import json
import logging
from starlette.websockets import WebSocket

from app.services.store import ALL_TABLES, CLUES, PLAYERS, ROOMS, ChangeEvent, GameStore, Subscription

logger = logging.getLogger(__name__)


@dataclass
class WSManager:
    _lock: RLock = field(default_factory=RLock, init=False, repr=False)
    # room_id -> set(WebSocket)
    clients_by_room: Dict[str, Set[WebSocket]] = field(default_factory=dict)
    # reverse map: socket -> room_id
    ws_to_room: Dict[WebSocket, str] = field(default_factory=dict)

    async def connect(self, ws: WebSocket, room_id: str) -> None:
        """Accepte la connexion WS et l'attache à la salle."""
        await ws.accept()
        with self._lock:
            self.clients_by_room.setdefault(room_id, set()).add(ws)
            self.ws_to_room[ws] = room_id

    def _unlink(self, ws: WebSocket) -> None:
        with self._lock:
            room_id = self.ws_to_room.pop(ws, None)
            if room_id:
                bucket = self.clients_by_room.get(room_id)
                if bucket and ws in bucket:
                    bucket.discard(ws)
                    if not bucket:
                        self.clients_by_room.pop(room_id, None)

    async def disconnect(self, ws: WebSocket) -> None:
        """Ferme proprement la connexion et nettoie les registres."""
        self._unlink(ws)
        try:
            await ws.close()
        except Exception:
            pass

    async def _send_json_one(self, ws: WebSocket, payload: Any) -> bool:
        """Envoie à un WS; renvoie True si succès, sinon False (et retire le WS mort)."""
        try:
            data = json.dumps(payload, ensure_ascii=False, separators=(",", ":"))
            await ws.send_text(data)
            return True
        except Exception:
            self._unlink(ws)
            return False

    async def send_json(self, ws: WebSocket, payload: Any) -> bool:
        return await self._send_json_one(ws, payload)

    def has_room(self, room_id: str) -> bool:
        with self._lock:
            return bool(self.clients_by_room.get(room_id))

    def _snapshot_room(self, room_id: str) -> list[WebSocket]:
        with self._lock:
            return list(self.clients_by_room.get(room_id, set()))

    def _snapshot_all(self) -> list[WebSocket]:
        with self._lock:
            result: list[WebSocket] = []
            for bucket in self.clients_by_room.values():
                result.extend(list(bucket))
            return result

    async def broadcast_room(self, room_id: str, payload: Any) -> int:
        conns = self._snapshot_room(room_id)
        success = 0
        for ws in conns:
            if await self._send_json_one(ws, payload):
                success += 1
        logger.debug("WS room broadcast", extra={"room_id": room_id, "success": success, "total": len(conns)})
        return success

    async def broadcast_room_type(self, room_id: str, event_type: str, payload: Any) -> int:
        return await self.broadcast_room(room_id, {"type": event_type, "payload": payload})

    # ---------- admin ----------
    def stats(self) -> dict:
        with self._lock:
            rooms = {rid: len(conns) for rid, conns in self.clients_by_room.items()}
            return {"rooms": rooms, "connections_total": sum(rooms.values())}

    async def close_all(self) -> dict:
        conns = self._snapshot_all()
        for ws in conns:
            await self.disconnect(ws)
        return self.stats()


# =====================================================
# WRAPPER THREAD-SAFE (utilisable depuis du code sync)
# =====================================================

def _run_async(coro):
    """
    Exécute une coroutine depuis un contexte potentiellement synchrone.
    - Essaie anyio.from_thread.run si on est dans un worker anyio (run_in_threadpool).
    - Sinon, planifie sur la loop courante si elle tourne, ou crée une loop.
    """
    import anyio as _anyio
    import asyncio as _asyncio

    async def _runner():
        return await coro  # évite 'cannot reuse already awaited coroutine'

    try:
        # cas FastAPI sync -> anyio.to_thread.run_sync(...): on est dans un thread anyio
        return _anyio.from_thread.run(_runner)
    except RuntimeError:
        try:
            loop = _asyncio.get_running_loop()
        except RuntimeError:
            loop = None
        if loop is not None:
            loop.create_task(_runner())  # fire-and-forget
            return None
        return _asyncio.run(_runner())


def ws_broadcast_room_type_safe(manager: WSManager, room_id: str, event_type: str, payload: dict):
    """Wrapper synchrone: broadcast typé aux sockets d'une salle (no-op si salle sans client)."""
    if not manager.has_room(room_id):
        return None
    return _run_async(manager.broadcast_room_type(room_id, event_type, payload))


# =====================================================
# Pont store -> WebSocket
# =====================================================

def _room_id_for(store: GameStore, change: ChangeEvent) -> Optional[str]:
    row = change.row
    if change.table == ROOMS:
        return row.get("id")
    if change.table == PLAYERS:
        return row.get("room_id")
    if change.table == CLUES:
        target = store.get(PLAYERS, row.get("player_id") or "")
        return target.get("room_id") if target else None
    return None


def bind_store(store: GameStore, manager: WSManager) -> Subscription:
    """Relaye chaque changement du store vers les sockets de la salle concernée."""

    def _relay(change: ChangeEvent) -> None:
        room_id = _room_id_for(store, change)
        if not room_id:
            return
        ws_broadcast_room_type_safe(manager, room_id, "change", {
            "table": change.table,
            "event": change.event,
            "room_id": room_id,
            "row_id": change.row.get("id"),
        })

    return store.subscribe(ALL_TABLES, _relay)
