"""
Proposed Holds

While a guest fills in the booking form, the rooms and nights they picked
are held for a short time so nobody else can take them. A hold occupies
availability like a booking until it expires; the guest's own session
never conflicts with its own holds, and they are released once that
session's booking is stored.
"""

from datetime import datetime, timedelta
from typing import Iterable, List
import logging

from shared.domain.value_objects import DateRange

from apps.reservations.domain.availability import AvailabilityEngine
from apps.reservations.domain.entities import (
    GuestPriceType,
    ProposedHold,
    RoomGuests,
    generate_proposal_id,
)
from apps.reservations.domain.errors import InvalidInputError, NotFoundError
from apps.reservations.domain.storage import AbstractStorage

logger = logging.getLogger(__name__)

DEFAULT_HOLD_MINUTES = 15


class HoldRegistry:
    """Hold lifecycle on top of the storage collaborator"""

    def __init__(self, storage: AbstractStorage, hold_minutes: int = DEFAULT_HOLD_MINUTES):
        if hold_minutes < 1:
            raise InvalidInputError('hold_minutes', "Holds must last at least one minute")
        self.storage = storage
        self.ttl = timedelta(minutes=hold_minutes)

    def create_hold(
        self,
        session_id: str,
        rooms: Iterable[str],
        dates: DateRange,
        now: datetime,
        guests: RoomGuests | None = None,
        guest_type: GuestPriceType = GuestPriceType.EXTERNAL,
    ) -> ProposedHold:
        """
        Hold rooms for the session until now + the hold time

        Raises ConflictError when a night is blocked, booked or held by
        another session, InvalidInputError for unknown rooms.
        """
        if not session_id:
            raise InvalidInputError('session_id', "A hold needs a session id")
        rooms = tuple(dict.fromkeys(str(r) for r in rooms))
        self.purge_expired(now)

        engine = AvailabilityEngine.from_storage(self.storage, now=now, exclude_session=session_id)
        engine.validate_request(rooms, dates).raise_first()

        hold = ProposedHold(
            proposal_id=generate_proposal_id(),
            session_id=session_id,
            rooms=rooms,
            dates=dates,
            created_at=now,
            expires_at=now + self.ttl,
            guests=guests or RoomGuests(),
            guest_type=GuestPriceType.parse(guest_type),
        )
        self.storage.put_hold(hold)
        logger.info(
            f"Held rooms {', '.join(rooms)} for session {session_id}, {dates} "
            f"until {hold.expires_at.isoformat()}"
        )
        return hold

    def get(self, proposal_id: str) -> ProposedHold:
        for hold in self.storage.get_holds():
            if hold.proposal_id == proposal_id:
                return hold
        raise NotFoundError('Hold', proposal_id)

    def active(self, now: datetime, session_id: str | None = None) -> List[ProposedHold]:
        holds = [h for h in self.storage.get_holds() if h.is_active(now)]
        if session_id is not None:
            holds = [h for h in holds if h.session_id == session_id]
        return sorted(holds, key=lambda h: (h.dates.start_date, h.proposal_id))

    def release(self, proposal_id: str) -> ProposedHold:
        """Remove one hold; raises NotFoundError for unknown ids"""
        hold = self.get(proposal_id)
        self.storage.delete_hold(proposal_id)
        logger.info(f"Released hold {proposal_id}")
        return hold

    def release_session(self, session_id: str) -> int:
        """Remove every hold of a session, expired ones included"""
        released = 0
        for hold in self.storage.get_holds():
            if hold.session_id == session_id and self.storage.delete_hold(hold.proposal_id):
                released += 1
        if released:
            logger.info(f"Released {released} holds of session {session_id}")
        return released

    def purge_expired(self, now: datetime) -> int:
        purged = 0
        for hold in self.storage.get_holds():
            if not hold.is_active(now) and self.storage.delete_hold(hold.proposal_id):
                purged += 1
        if purged:
            logger.debug(f"Purged {purged} expired holds")
        return purged
