from __future__ import annotations

import random
import string
from contextlib import contextmanager
from threading import RLock
from typing import Callable, Iterator

from . import state
from .errors import NotFound, room_not_found
from .models import Room


ROOM_ID_ALPHABET = string.ascii_uppercase + string.digits
ROOM_ID_LENGTH = 6


class RoomTransaction:
    """Handle yielded by ``RoomRegistry.transact``.

    Assign ``room`` to commit a new snapshot, call ``delete()`` to tear the
    room down. Nothing is written if the ``with`` block raises.
    """

    def __init__(self, room: Room) -> None:
        self.original = room
        self.room = room
        self.deleted = False

    def delete(self) -> None:
        self.deleted = True


class RoomRegistry:
    """Owns every Room snapshot, keyed by room id.

    The id -> room map is guarded by ``_lock``; each room additionally has its
    own lock so that commands and the presence sweep against the same room
    serialize while different rooms proceed in parallel.
    """

    def __init__(self, rng: random.Random | None = None, id_length: int = ROOM_ID_LENGTH) -> None:
        self._lock = RLock()
        self._rooms: dict[str, Room] = {}
        self._room_locks: dict[str, RLock] = {}
        self._rng = rng or random.SystemRandom()
        self._id_length = id_length

    def _new_room_id(self) -> str:
        code = "".join(self._rng.choices(ROOM_ID_ALPHABET, k=self._id_length))
        while code in self._rooms:
            code = "".join(self._rng.choices(ROOM_ID_ALPHABET, k=self._id_length))
        return code

    def create(
        self,
        host_id: str,
        category: str,
        turns_per_player: int,
        total_games: int,
        *,
        word: str,
        setup: Callable[[Room], Room] | None = None,
        **options,
    ) -> Room:
        """Create and publish a room.

        ``setup`` runs before the room becomes visible to other callers, so
        the host can be seated atomically with creation.
        """
        with self._lock:
            room_id = self._new_room_id()
            room = state.new_room(
                room_id,
                host_id,
                category,
                word,
                turns_per_player=turns_per_player,
                total_games=total_games,
                **options,
            )
            if setup is not None:
                room = setup(room)
            self._rooms[room_id] = room
            self._room_locks[room_id] = RLock()
            return room

    def get(self, room_id: str) -> Room:
        with self._lock:
            room = self._rooms.get(room_id)
        if room is None:
            raise room_not_found(room_id)
        return room

    def find(self, room_id: str) -> Room | None:
        with self._lock:
            return self._rooms.get(room_id)

    def list_rooms(self) -> list[Room]:
        with self._lock:
            return list(self._rooms.values())

    def __len__(self) -> int:
        with self._lock:
            return len(self._rooms)

    def __contains__(self, room_id: str) -> bool:
        with self._lock:
            return room_id in self._rooms

    def delete(self, room_id: str) -> bool:
        try:
            with self.transact(room_id) as tx:
                tx.delete()
        except NotFound:
            return False
        return True

    @contextmanager
    def transact(self, room_id: str) -> Iterator[RoomTransaction]:
        with self._lock:
            lock = self._room_locks.get(room_id)
        if lock is None:
            raise room_not_found(room_id)

        with lock:
            with self._lock:
                room = self._rooms.get(room_id)
                # The room may have been torn down while we waited.
                if room is None or self._room_locks.get(room_id) is not lock:
                    raise room_not_found(room_id)

            tx = RoomTransaction(room)
            yield tx

            with self._lock:
                if tx.deleted:
                    self._rooms.pop(room_id, None)
                    self._room_locks.pop(room_id, None)
                elif tx.room is not tx.original:
                    self._rooms[room_id] = tx.room
