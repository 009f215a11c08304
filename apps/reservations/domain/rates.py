"""
Rate Configuration

Immutable snapshot of the property's price table. Built from the settings
document held by the storage collaborator and passed explicitly into every
pricing call; nothing in the engine caches it.

Settings document layout:

    {
        "prices": {
            "utia": {"base": 298, "adult": 49, "child": 24},
            "external": {"base": 499, "adult": 99, "child": 49}
        },
        "bulk_prices": {
            "base_price": 2000,
            "utia_adult": 100, "utia_child": 0,
            "external_adult": 250, "external_child": 50
        }
    }
"""

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Mapping
import logging

from shared.domain.base import ValueObject

from apps.reservations.domain.entities import GuestPriceType
from apps.reservations.domain.errors import ConfigurationError

logger = logging.getLogger(__name__)

GUEST_RATE_FIELDS = ('base', 'adult', 'child')
BULK_RATE_FIELDS = ('base_price', 'utia_adult', 'utia_child', 'external_adult', 'external_child')

DEFAULT_RATES = {
    'prices': {
        'utia': {'base': 298, 'adult': 49, 'child': 24},
        'external': {'base': 499, 'adult': 99, 'child': 49},
    },
    'bulk_prices': {
        'base_price': 2000,
        'utia_adult': 100,
        'utia_child': 0,
        'external_adult': 250,
        'external_child': 50,
    },
}


def _read_rate(section: Mapping, key: str, path: str) -> Decimal:
    if key not in section or section[key] is None:
        logger.error(f"Rate configuration is missing {path}")
        raise ConfigurationError(path)
    value = section[key]
    if isinstance(value, bool):
        raise ConfigurationError(path, f"Rate '{path}' must be a number, got {value!r}")
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ConfigurationError(path, f"Rate '{path}' must be a number, got {value!r}")
    if not amount.is_finite() or amount < 0:
        raise ConfigurationError(path, f"Rate '{path}' must be a non-negative number, got {value!r}")
    return amount


def _as_number(amount: Decimal):
    """Rate as a plain JSON number, so the settings document never holds strings"""
    return int(amount) if amount == amount.to_integral_value() else float(amount)


@dataclass(frozen=True)
class GuestRates(ValueObject):
    """Per-room rates of one guest tier"""
    base: Decimal
    adult: Decimal
    child: Decimal

    @classmethod
    def from_dict(cls, data: Mapping, path: str) -> 'GuestRates':
        return cls(**{f: _read_rate(data, f, f"{path}.{f}") for f in GUEST_RATE_FIELDS})

    def to_dict(self) -> dict:
        return {f: _as_number(getattr(self, f)) for f in GUEST_RATE_FIELDS}


@dataclass(frozen=True)
class BulkRates(ValueObject):
    """Whole-property rates: flat nightly base plus per-guest surcharges"""
    base_price: Decimal
    utia_adult: Decimal
    utia_child: Decimal
    external_adult: Decimal
    external_child: Decimal

    @classmethod
    def from_dict(cls, data: Mapping, path: str = 'bulk_prices') -> 'BulkRates':
        return cls(**{f: _read_rate(data, f, f"{path}.{f}") for f in BULK_RATE_FIELDS})

    def to_dict(self) -> dict:
        return {f: _as_number(getattr(self, f)) for f in BULK_RATE_FIELDS}


@dataclass(frozen=True)
class RateConfig(ValueObject):
    """
    Rate table snapshot

    A missing section is allowed at construction (a property may not offer
    bulk bookings yet) but any calculation that needs it raises
    ConfigurationError. A present section must be complete.
    """
    utia: GuestRates | None = None
    external: GuestRates | None = None
    bulk: BulkRates | None = None

    def guest_rates(self, guest_type: GuestPriceType) -> GuestRates:
        rates = self.utia if guest_type is GuestPriceType.UTIA else self.external
        if rates is None:
            logger.error(f"No rates configured for guest type {guest_type.value}")
            raise ConfigurationError(f"prices.{guest_type.value}")
        return rates

    def bulk_rates(self) -> BulkRates:
        if self.bulk is None:
            logger.error("No bulk rates configured")
            raise ConfigurationError('bulk_prices')
        return self.bulk

    @classmethod
    def from_dict(cls, data: Mapping | None) -> 'RateConfig':
        """
        Parse a settings document

        Raises ConfigurationError for incomplete or non-numeric sections.
        """
        data = data or {}
        prices = data.get('prices') or {}
        sections = {}
        for guest_type in GuestPriceType:
            section = prices.get(guest_type.value)
            if section is not None:
                sections[guest_type.value] = GuestRates.from_dict(
                    section, f"prices.{guest_type.value}"
                )
        bulk = data.get('bulk_prices')
        return cls(
            utia=sections.get('utia'),
            external=sections.get('external'),
            bulk=BulkRates.from_dict(bulk) if bulk is not None else None,
        )

    def to_dict(self) -> dict:
        prices = {}
        if self.utia is not None:
            prices['utia'] = self.utia.to_dict()
        if self.external is not None:
            prices['external'] = self.external.to_dict()
        data = {'prices': prices}
        if self.bulk is not None:
            data['bulk_prices'] = self.bulk.to_dict()
        return data

    @classmethod
    def default(cls) -> 'RateConfig':
        return cls.from_dict(DEFAULT_RATES)
