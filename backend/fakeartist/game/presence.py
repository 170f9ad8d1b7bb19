from __future__ import annotations

import logging
from dataclasses import dataclass, field
from threading import Lock

from . import state
from .errors import NotFound
from .registry import RoomRegistry


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PresenceRecord:
    room_id: str
    last_seen: int
    is_host: bool = False


@dataclass
class SweepReport:
    updated_rooms: set[str] = field(default_factory=set)
    closed_rooms: set[str] = field(default_factory=set)
    evicted: list[str] = field(default_factory=list)


class PresenceTracker:
    """Last-seen bookkeeping per player.

    Holds ids and timestamps only; rooms are always looked up through the
    registry. The map has its own lock. It is a leaf lock: it may be taken with
    or without a room lock held, but no other lock is ever acquired while it
    is held.
    """

    def __init__(self, timeout_ms: int = 90_000) -> None:
        self.timeout_ms = timeout_ms
        self._lock = Lock()
        self._records: dict[str, PresenceRecord] = {}

    def touch(self, player_id: str, room_id: str, is_host: bool, now: int) -> bool:
        """Refresh a record; returns True if the player was not tracked before."""
        with self._lock:
            is_new = player_id not in self._records
            self._records[player_id] = PresenceRecord(room_id=room_id, last_seen=now, is_host=is_host)
            return is_new

    def get(self, player_id: str) -> PresenceRecord | None:
        with self._lock:
            return self._records.get(player_id)

    def forget(self, player_id: str, room_id: str | None = None) -> None:
        with self._lock:
            rec = self._records.get(player_id)
            if rec is None:
                return
            if room_id is not None and rec.room_id != room_id:
                return
            del self._records[player_id]

    def forget_room(self, room_id: str) -> list[str]:
        with self._lock:
            gone = [pid for pid, rec in self._records.items() if rec.room_id == room_id]
            for pid in gone:
                del self._records[pid]
            return gone

    def is_expired(self, player_id: str, room_id: str, now: int) -> bool:
        with self._lock:
            rec = self._records.get(player_id)
        if rec is None or rec.room_id != room_id:
            return False
        return now - rec.last_seen > self.timeout_ms

    def expired(self, now: int) -> list[tuple[str, PresenceRecord]]:
        with self._lock:
            return [
                (pid, rec)
                for pid, rec in self._records.items()
                if now - rec.last_seen > self.timeout_ms
            ]

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def __contains__(self, player_id: str) -> bool:
        with self._lock:
            return player_id in self._records

    def sweep(self, registry: RoomRegistry, now: int) -> SweepReport:
        """Evict every player whose last heartbeat is older than the timeout.

        A timed-out host closes the room while it is still in the lobby or
        has two players or fewer; otherwise the host is only flagged
        disconnected. Timed-out regular players are removed from their room.
        Expiry is re-checked under the room lock so a heartbeat that lands
        mid-sweep keeps the player.
        """
        report = SweepReport()
        stale = self.expired(now)
        if stale:
            logger.info("[presence-sweep] tracked=%d stale=%d", len(self), len(stale))

        for player_id, rec in stale:
            if rec.room_id in report.closed_rooms:
                continue
            try:
                with registry.transact(rec.room_id) as tx:
                    if not self.is_expired(player_id, rec.room_id, now):
                        continue

                    room = tx.room
                    player = room.find_player(player_id)
                    if player is None:
                        self.forget(player_id, rec.room_id)
                        continue

                    if player.is_host:
                        if room.game_phase == "lobby" or len(room.players) <= 2:
                            tx.delete()
                            dropped = self.forget_room(room.id)
                            report.closed_rooms.add(room.id)
                            report.updated_rooms.discard(room.id)
                            report.evicted.extend(dropped)
                            logger.info(
                                "[presence-close] room=%s host=%s phase=%s players=%d",
                                room.id, player_id, room.game_phase, len(room.players),
                            )
                            continue
                        tx.room = state.set_disconnected(room, player_id, True)
                        logger.info(
                            "[presence-host-away] room=%s host=%s phase=%s kept alive",
                            room.id, player_id, room.game_phase,
                        )
                    else:
                        tx.room = state.remove_player(room, player_id, now)
                        logger.info(
                            "[presence-evict] room=%s player=%s name=%s idle_ms=%d",
                            room.id, player_id, player.name, now - rec.last_seen,
                        )

                    self.forget(player_id, rec.room_id)
                    report.updated_rooms.add(room.id)
                    report.evicted.append(player_id)
            except NotFound:
                self.forget(player_id, rec.room_id)

        return report
