"""
Storage Collaborator

The engine reads and writes rooms, bookings, blockages, proposed holds and
settings only
through this interface. Implementations must round-trip exact values and
offer `lock_rooms`, the primitive that makes conflict-check-then-write
atomic per room: callers hold it around validate + persist.
"""

from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Dict, Iterable, Iterator, List
import copy
import threading

from apps.reservations.domain.entities import BlockageInstance, Booking, ProposedHold, Room


class AbstractStorage(ABC):
    """Persistence port used by the reservation engine"""

    @abstractmethod
    def get_rooms(self) -> List[Room]:
        pass

    @abstractmethod
    def get_bookings(self) -> List[Booking]:
        pass

    @abstractmethod
    def get_booking(self, booking_id: str) -> Booking | None:
        pass

    @abstractmethod
    def put_booking(self, booking: Booking):
        pass

    @abstractmethod
    def delete_booking(self, booking_id: str) -> bool:
        """Remove a booking; returns False when it did not exist"""

    @abstractmethod
    def get_blockages(self) -> List[BlockageInstance]:
        pass

    @abstractmethod
    def put_blockage(self, blockage: BlockageInstance):
        pass

    @abstractmethod
    def delete_blockage(self, blockage_id: str) -> bool:
        """Remove a blockage; returns False when it did not exist"""

    @abstractmethod
    def get_holds(self) -> List[ProposedHold]:
        """Every stored hold, expired ones included"""

    @abstractmethod
    def put_hold(self, hold: ProposedHold):
        pass

    @abstractmethod
    def delete_hold(self, proposal_id: str) -> bool:
        """Remove a hold; returns False when it did not exist"""

    @abstractmethod
    def get_settings(self) -> dict:
        pass

    @abstractmethod
    def put_settings(self, settings: dict):
        pass

    @abstractmethod
    def lock_rooms(self, room_ids: Iterable[str]):
        """
        Context manager serialising writers of the given rooms

        Everything read and written inside the block is seen atomically by
        other writers of the same rooms.
        """

    def get_bookings_in_group(self, group_id: str) -> List[Booking]:
        return [b for b in self.get_bookings() if b.group_id == group_id]


class InMemoryStorage(AbstractStorage):
    """
    Process-local storage

    Values are deep-copied on the way in and out so callers can never
    mutate stored state behind the engine's back. One re-entrant lock
    stands in for per-room locks.
    """

    def __init__(
        self,
        rooms: Iterable[Room] = (),
        settings: dict | None = None,
        bookings: Iterable[Booking] = (),
        blockages: Iterable[BlockageInstance] = (),
    ):
        self._rooms: Dict[str, Room] = {room.id: room for room in rooms}
        self._bookings: Dict[str, Booking] = {}
        self._blockages: Dict[str, BlockageInstance] = {}
        self._holds: Dict[str, ProposedHold] = {}
        self._settings: dict = copy.deepcopy(settings) if settings else {}
        self._lock = threading.RLock()
        for booking in bookings:
            self.put_booking(booking)
        for blockage in blockages:
            self.put_blockage(blockage)

    def get_rooms(self) -> List[Room]:
        with self._lock:
            return list(self._rooms.values())

    def put_room(self, room: Room):
        with self._lock:
            self._rooms[room.id] = room

    def get_bookings(self) -> List[Booking]:
        with self._lock:
            return [copy.deepcopy(b) for b in self._bookings.values()]

    def get_booking(self, booking_id: str) -> Booking | None:
        with self._lock:
            booking = self._bookings.get(booking_id)
            return copy.deepcopy(booking) if booking else None

    def put_booking(self, booking: Booking):
        stored = copy.deepcopy(booking)
        stored.clear_events()
        with self._lock:
            self._bookings[booking.id] = stored

    def delete_booking(self, booking_id: str) -> bool:
        with self._lock:
            return self._bookings.pop(booking_id, None) is not None

    def get_blockages(self) -> List[BlockageInstance]:
        with self._lock:
            return list(self._blockages.values())

    def put_blockage(self, blockage: BlockageInstance):
        with self._lock:
            self._blockages[blockage.blockage_id] = blockage

    def delete_blockage(self, blockage_id: str) -> bool:
        with self._lock:
            return self._blockages.pop(blockage_id, None) is not None

    def get_holds(self) -> List[ProposedHold]:
        with self._lock:
            return list(self._holds.values())

    def put_hold(self, hold: ProposedHold):
        with self._lock:
            self._holds[hold.proposal_id] = hold

    def delete_hold(self, proposal_id: str) -> bool:
        with self._lock:
            return self._holds.pop(proposal_id, None) is not None

    def get_settings(self) -> dict:
        with self._lock:
            return copy.deepcopy(self._settings)

    def put_settings(self, settings: dict):
        with self._lock:
            self._settings = copy.deepcopy(settings)

    @contextmanager
    def lock_rooms(self, room_ids: Iterable[str]) -> Iterator[None]:
        with self._lock:
            yield
