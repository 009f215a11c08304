"""
Christmas Period Rules

Stays touching a Christmas period are rationed. Periods and access codes
are part of the settings document:

    {
        "christmas_periods": [{"start": "2025-12-23", "end": "2026-01-02"}],
        "christmas_access_codes": ["XMAS2025"]
    }

Period end dates are inclusive. Until 30 September of the year a period
starts, a stay touching it needs a valid access code and ÚTIA employees
may book at most two rooms. From 1 October no code is needed, but the
whole property can no longer be booked in bulk. Administrators are exempt.
"""

from dataclasses import dataclass
from datetime import date
from typing import Mapping, Tuple
import logging

from shared.domain.base import ValueObject
from shared.domain.value_objects import DateRange

from apps.reservations.domain.entities import Booking, GuestPriceType
from apps.reservations.domain.errors import ConfigurationError, InvalidInputError, ValidationResult

logger = logging.getLogger(__name__)

UTIA_ROOM_LIMIT = 2


def _parse_day(value, path: str) -> date:
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value))
    except ValueError:
        raise ConfigurationError(path, f"'{path}' must be a YYYY-MM-DD date, got {value!r}")


@dataclass(frozen=True)
class ChristmasPeriod(ValueObject):
    start: date
    end: date

    def __post_init__(self):
        if self.end < self.start:
            raise ConfigurationError(
                'christmas_periods',
                f"Christmas period ends {self.end} before it starts {self.start}"
            )

    @property
    def code_deadline(self) -> date:
        """Last day on which the access code and room limit apply"""
        return date(self.start.year, 9, 30)

    def touches(self, stay: DateRange) -> bool:
        """A night of the stay falls on a day of the period"""
        return stay.start_date <= self.end and stay.end_date > self.start

    def to_dict(self) -> dict:
        return {'start': self.start.isoformat(), 'end': self.end.isoformat()}


@dataclass(frozen=True)
class ChristmasPolicy(ValueObject):
    """
    Christmas rules read from the settings document

    Usage:
        policy = ChristmasPolicy.from_dict(storage.get_settings())
        result = policy.validate(booking, today, access_code='XMAS2025')
    """
    periods: Tuple[ChristmasPeriod, ...] = ()
    access_codes: Tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, data: Mapping | None) -> 'ChristmasPolicy':
        data = data or {}
        periods = []
        for index, item in enumerate(data.get('christmas_periods') or ()):
            path = f"christmas_periods[{index}]"
            if not isinstance(item, Mapping) or 'start' not in item or 'end' not in item:
                raise ConfigurationError(path, f"'{path}' needs a start and an end date")
            periods.append(ChristmasPeriod(
                start=_parse_day(item['start'], f"{path}.start"),
                end=_parse_day(item['end'], f"{path}.end"),
            ))
        codes = data.get('christmas_access_codes') or ()
        if isinstance(codes, str):
            raise ConfigurationError('christmas_access_codes', "Access codes must be a list")
        return cls(
            periods=tuple(sorted(periods, key=lambda p: p.start)),
            access_codes=tuple(str(code) for code in codes),
        )

    def to_dict(self) -> dict:
        return {
            'christmas_periods': [p.to_dict() for p in self.periods],
            'christmas_access_codes': list(self.access_codes),
        }

    def period_for(self, stay: DateRange) -> ChristmasPeriod | None:
        for period in self.periods:
            if period.touches(stay):
                return period
        return None

    def validate(
        self,
        booking: Booking,
        today: date,
        access_code: str = '',
        is_admin: bool = False,
    ) -> ValidationResult:
        if is_admin:
            return ValidationResult()
        period = self.period_for(booking.span)
        if period is None:
            return ValidationResult()

        errors = []
        if today <= period.code_deadline:
            if not access_code:
                errors.append(InvalidInputError(
                    'christmas_code',
                    "An access code is required for stays over Christmas"
                ))
            elif access_code not in self.access_codes:
                errors.append(InvalidInputError('christmas_code', "Invalid Christmas access code"))
            if (
                not booking.is_bulk_booking
                and booking.guest_type is GuestPriceType.UTIA
                and len(booking.rooms) > UTIA_ROOM_LIMIT
            ):
                errors.append(InvalidInputError(
                    'rooms',
                    f"Until {period.code_deadline.strftime('%d.%m.')} ÚTIA employees may book "
                    f"at most {UTIA_ROOM_LIMIT} rooms over Christmas"
                ))
        elif booking.is_bulk_booking:
            errors.append(InvalidInputError(
                'is_bulk_booking',
                f"Bulk bookings over Christmas closed on {period.code_deadline.strftime('%d.%m.%Y')}"
            ))

        for error in errors:
            logger.info(f"Christmas rule rejected booking {booking.id}: {error.message}")
        return ValidationResult(tuple(errors))
