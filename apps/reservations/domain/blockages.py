"""
Blockage Registry

Administrator blackout ranges. Each blockage is stored as one instance
covering its whole range (never one record per day), deleted wholesale by
its id.
"""

from datetime import date, timedelta
from typing import Iterable, List
import logging

from shared.domain.value_objects import DateRange

from apps.reservations.domain.entities import BlockageInstance, generate_blockage_id
from apps.reservations.domain.errors import InvalidInputError, NotFoundError
from apps.reservations.domain.storage import AbstractStorage

logger = logging.getLogger(__name__)


class BlockageRegistry:
    """Blockage queries and lifecycle on top of the storage collaborator"""

    def __init__(self, storage: AbstractStorage):
        self.storage = storage

    def create_blockage(
        self,
        dates: DateRange,
        room_ids: Iterable[str] = (),
        reason: str = '',
    ) -> str:
        """
        Store one blockage instance for the whole range

        An empty room_ids blocks every room. Returns the new blockage id.
        """
        room_ids = tuple(dict.fromkeys(str(r) for r in room_ids))
        known = {room.id for room in self.storage.get_rooms()}
        unknown = [r for r in room_ids if r not in known]
        if unknown:
            raise InvalidInputError('room_ids', f"Unknown rooms: {', '.join(unknown)}")

        blockage = BlockageInstance(
            blockage_id=generate_blockage_id(),
            dates=dates,
            room_ids=room_ids,
            reason=reason,
        )
        self.storage.put_blockage(blockage)
        logger.info(
            f"Created blockage {blockage.blockage_id} for "
            f"{'all rooms' if blockage.is_property_wide else ', '.join(room_ids)}, {dates}"
        )
        return blockage.blockage_id

    def delete_blockage(self, blockage_id: str) -> BlockageInstance:
        """Remove a blockage; raises NotFoundError for unknown ids"""
        blockage = self.get(blockage_id)
        self.storage.delete_blockage(blockage_id)
        logger.info(f"Deleted blockage {blockage_id}")
        return blockage

    def get(self, blockage_id: str) -> BlockageInstance:
        for blockage in self.storage.get_blockages():
            if blockage.blockage_id == blockage_id:
                return blockage
        raise NotFoundError('Blockage', blockage_id)

    def all(self) -> List[BlockageInstance]:
        return sorted(self.storage.get_blockages(), key=lambda b: (b.dates.start_date, b.blockage_id))

    def find_blocking(self, room_id: str, night: date) -> BlockageInstance | None:
        """First blockage covering the room on that night"""
        for blockage in self.all():
            if blockage.blocks(room_id, night):
                return blockage
        return None

    def is_blocked(self, room_id: str, night: date) -> bool:
        return self.find_blocking(room_id, night) is not None

    def list_active(self, as_of: date, grace_days: int = 0) -> List[BlockageInstance]:
        """
        Blockages ending on or after as_of - grace_days

        The grace window is a presentation choice left to the caller.
        """
        if grace_days < 0:
            raise InvalidInputError('grace_days', "grace_days must not be negative")
        cutoff = as_of - timedelta(days=grace_days)
        return [b for b in self.all() if b.dates.end_date >= cutoff]
