from __future__ import annotations

import pytest

from shared.application.message_bus import MessageBus
from shared.application.uow import InMemoryUnitOfWork
from shared.domain.base import DomainEvent

from apps.reservations.domain.entities import Room
from apps.reservations.domain.rates import DEFAULT_RATES, RateConfig
from apps.reservations.domain.storage import InMemoryStorage

from .factories import CATALOGUE, ROUND_RATES


@pytest.fixture
def rooms():
    return [Room(id=room_id, name=f"Pokoj {room_id}", bed_count=beds) for room_id, beds in CATALOGUE]


@pytest.fixture
def rates():
    return RateConfig.from_dict(ROUND_RATES)


@pytest.fixture
def default_rates():
    return RateConfig.from_dict(DEFAULT_RATES)


@pytest.fixture
def storage(rooms):
    return InMemoryStorage(rooms=rooms, settings=ROUND_RATES)


@pytest.fixture
def bus():
    return MessageBus()


@pytest.fixture
def published(bus):
    """Every event published on the test bus, in order."""
    events = []
    bus.register_event_handler(DomainEvent, events.append)
    return events


@pytest.fixture
def uow_factory(bus):
    return lambda: InMemoryUnitOfWork(bus)
