"""
Service: store.py
Rôle :
- Store partagé "orienté lignes" : tables `rooms`, `players`, `clues`.
- Requêtes par filtres d'égalité, tri sur une colonne, transactions atomiques.
- Notifications de changement (INSERT / UPDATE) filtrables par table + égalité
  sur une colonne (ex: players où room_id == X).

Stockage :
- En mémoire, avec snapshot JSON optionnel (`<DATA_DIR>/store.json`) réécrit à
  chaque commit.

Concurrence :
- Toutes les lectures/écritures passent par un RLock ; une transaction garde le
  verrou pendant tout son corps.
- Les lectures renvoient des copies, jamais les lignes vivantes.
- Les notifications partent APRÈS le commit, hors verrou, vers un snapshot de la
  liste des abonnés. Un rollback n'émet rien.
"""
from __future__ import annotations

import copy
import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from threading import RLock
from typing import Any, Callable, Dict, Iterator, List, Optional
from uuid import uuid4

from .io_utils import read_json, write_json

logger = logging.getLogger(__name__)

ROOMS = "rooms"
PLAYERS = "players"
CLUES = "clues"
TABLES = (ROOMS, PLAYERS, CLUES)
ALL_TABLES = "*"

EVENT_INSERT = "INSERT"
EVENT_UPDATE = "UPDATE"

UNIQUE_COLUMNS: Dict[str, tuple] = {ROOMS: ("room_code",)}

Row = Dict[str, Any]


class StoreError(RuntimeError):
    """Erreur générique du store."""


class StoreWriteError(StoreError):
    """Écriture refusée (contrainte, ligne inconnue, persistance impossible)."""


def utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _empty_tables() -> Dict[str, Dict[str, Row]]:
    return {name: {} for name in TABLES}


@dataclass(frozen=True)
class ChangeEvent:
    table: str
    event: str
    row: Row
    old: Optional[Row] = None


ChangeCallback = Callable[[ChangeEvent], None]


@dataclass
class Subscription:
    """Abonnement actif ; `close()` le retire du store (idempotent)."""
    store: "GameStore" = field(repr=False)
    table: str
    callback: ChangeCallback = field(repr=False)
    column: Optional[str] = None
    value: Any = None
    event: Optional[str] = None
    active: bool = True

    def matches(self, change: ChangeEvent) -> bool:
        if not self.active:
            return False
        if self.table != ALL_TABLES and self.table != change.table:
            return False
        if self.event and self.event != change.event:
            return False
        if self.column is not None and change.row.get(self.column) != self.value:
            return False
        return True

    def close(self) -> None:
        if self.active:
            self.active = False
            self.store._unsubscribe(self)


@dataclass
class GameStore:
    path: Optional[Path] = None
    _lock: RLock = field(default_factory=RLock, init=False, repr=False)
    tables: Dict[str, Dict[str, Row]] = field(default_factory=_empty_tables)
    _subscriptions: List[Subscription] = field(default_factory=list, init=False, repr=False)
    _tx_depth: int = field(default=0, init=False, repr=False)
    _pending: List[ChangeEvent] = field(default_factory=list, init=False, repr=False)

    # -----------------------------
    # Chargement / Sauvegarde
    # -----------------------------
    def load(self) -> None:
        """Recharge le snapshot disque (ou tables vides)."""
        with self._lock:
            data = read_json(self.path) if self.path else None
            tables = _empty_tables()
            if isinstance(data, dict):
                for name in TABLES:
                    rows = data.get(name)
                    if isinstance(rows, dict):
                        tables[name] = rows
            self.tables = tables

    def save(self) -> None:
        with self._lock:
            if self.path:
                write_json(self.path, self.tables)

    # -----------------------------
    # Transactions
    # -----------------------------
    @contextmanager
    def transaction(self) -> Iterator["GameStore"]:
        """
        Regroupe plusieurs écritures : tout est appliqué, ou rien.
        Les transactions imbriquées rejoignent la transaction englobante.
        """
        dispatch: List[ChangeEvent] = []
        with self._lock:
            outermost = self._tx_depth == 0
            snapshot = copy.deepcopy(self.tables) if outermost else None
            if outermost:
                self._pending = []
            self._tx_depth += 1
            try:
                yield self
                if outermost:
                    try:
                        self.save()
                    except OSError as exc:
                        raise StoreWriteError(f"Failed to persist store: {exc}") from exc
            except BaseException:
                if outermost:
                    self.tables = snapshot
                    self._pending = []
                    logger.warning("Store transaction rolled back")
                raise
            finally:
                self._tx_depth -= 1
            if outermost:
                dispatch, self._pending = self._pending, []
        self._dispatch(dispatch)

    # -----------------------------
    # Écritures
    # -----------------------------
    def _table(self, table: str) -> Dict[str, Row]:
        if table not in self.tables:
            raise StoreError(f"Unknown table: {table}")
        return self.tables[table]

    def _check_unique(self, table: str, row: Row, row_id: str) -> None:
        for column in UNIQUE_COLUMNS.get(table, ()):
            value = row.get(column)
            for other_id, other in self.tables[table].items():
                if other_id != row_id and other.get(column) == value:
                    raise StoreWriteError(f"Duplicate value for {table}.{column}: {value}")

    def insert(self, table: str, row: Row) -> Row:
        """Insère une ligne (id uuid4 et created_at générés si absents)."""
        with self.transaction():
            rows = self._table(table)
            data = copy.deepcopy(row)
            row_id = str(data.get("id") or uuid4())
            if row_id in rows:
                raise StoreWriteError(f"Duplicate id in {table}: {row_id}")
            data["id"] = row_id
            data.setdefault("created_at", utcnow_iso())
            self._check_unique(table, data, row_id)
            rows[row_id] = data
            self._pending.append(ChangeEvent(table, EVENT_INSERT, copy.deepcopy(data)))
            return copy.deepcopy(data)

    def update(self, table: str, row_id: str, changes: Row) -> Row:
        """Met à jour une ligne existante ; ligne inconnue => StoreWriteError."""
        with self.transaction():
            rows = self._table(table)
            current = rows.get(row_id)
            if current is None:
                raise StoreWriteError(f"No row {row_id} in {table}")
            old = copy.deepcopy(current)
            updated = {**current, **copy.deepcopy(changes), "id": row_id}
            self._check_unique(table, updated, row_id)
            rows[row_id] = updated
            self._pending.append(ChangeEvent(table, EVENT_UPDATE, copy.deepcopy(updated), old))
            return copy.deepcopy(updated)

    # -----------------------------
    # Lectures
    # -----------------------------
    def get(self, table: str, row_id: str) -> Optional[Row]:
        with self._lock:
            row = self._table(table).get(row_id)
            return copy.deepcopy(row) if row is not None else None

    def select(self, table: str, *, order_by: Optional[str] = None, descending: bool = False, **filters: Any) -> List[Row]:
        """Lignes dont chaque colonne de `filters` vaut exactement la valeur donnée."""
        with self._lock:
            rows = [
                copy.deepcopy(row)
                for row in self._table(table).values()
                if all(row.get(col) == val for col, val in filters.items())
            ]
        if order_by:
            rows.sort(key=lambda r: (r.get(order_by) is None, r.get(order_by)), reverse=descending)
        return rows

    def first(self, table: str, **filters: Any) -> Optional[Row]:
        rows = self.select(table, **filters)
        return rows[0] if rows else None

    def count(self, table: str, **filters: Any) -> int:
        with self._lock:
            return sum(
                1 for row in self._table(table).values()
                if all(row.get(col) == val for col, val in filters.items())
            )

    # -----------------------------
    # Notifications
    # -----------------------------
    def subscribe(
        self,
        table: str,
        callback: ChangeCallback,
        *,
        column: Optional[str] = None,
        value: Any = None,
        event: Optional[str] = None,
    ) -> Subscription:
        """Abonne `callback` aux changements de `table` (ou "*" pour toutes)."""
        if table != ALL_TABLES and table not in TABLES:
            raise StoreError(f"Unknown table: {table}")
        sub = Subscription(store=self, table=table, callback=callback, column=column, value=value, event=event)
        with self._lock:
            self._subscriptions.append(sub)
        return sub

    def _unsubscribe(self, sub: Subscription) -> None:
        with self._lock:
            if sub in self._subscriptions:
                self._subscriptions.remove(sub)

    def subscriptions_count(self) -> int:
        with self._lock:
            return len(self._subscriptions)

    def _dispatch(self, changes: List[ChangeEvent]) -> None:
        for change in changes:
            with self._lock:
                targets = [s for s in self._subscriptions if s.matches(change)]
            for sub in targets:
                if not sub.active:  # fermé par un callback précédent
                    continue
                try:
                    sub.callback(change)
                except Exception:
                    logger.exception(
                        "Change subscriber failed",
                        extra={"table": change.table, "event": change.event},
                    )


def build_store(data_dir: Optional[str] = None, filename: str = "store.json", persist: bool = True) -> GameStore:
    """Construit un store (persisté sous `data_dir` si `persist`) et charge son snapshot."""
    path = Path(data_dir) / filename if (persist and data_dir) else None
    store = GameStore(path=path)
    store.load()
    return store
