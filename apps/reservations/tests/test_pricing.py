"""Tests for price calculation and recomputation."""

from __future__ import annotations

from decimal import Decimal

import pytest

from apps.reservations.domain.entities import GuestPriceType, GuestRecord, PersonType, RoomGuests
from apps.reservations.domain.errors import ConfigurationError, InvalidInputError
from apps.reservations.domain.pricing import PriceCalculator
from apps.reservations.domain.rates import RateConfig

from .factories import ROUND_RATES, june, make_booking

UTIA = GuestPriceType.UTIA
EXTERNAL = GuestPriceType.EXTERNAL


def adult(tier=EXTERNAL, room_id=None):
    return GuestRecord(PersonType.ADULT, tier, room_id)


def child(tier=EXTERNAL, room_id=None):
    return GuestRecord(PersonType.CHILD, tier, room_id)


def toddler(tier=EXTERNAL, room_id=None):
    return GuestRecord(PersonType.TODDLER, tier, room_id)


# ----- simple -----

def test_single_room_utia_price(rates):
    price = PriceCalculator.calculate_simple(
        guest_type=UTIA, adults=2, children=1, nights=2, room_count=1, settings=rates,
    )
    assert price == Decimal("750")


def test_single_room_price_with_default_rates(default_rates):
    price = PriceCalculator.calculate_simple(
        guest_type=UTIA, adults=2, children=1, nights=2, room_count=1, settings=default_rates,
    )
    assert price == Decimal("742")


def test_base_rate_covers_one_adult_per_room(rates):
    breakdown = PriceCalculator.simple_breakdown(
        guest_type=EXTERNAL, adults=3, nights=1, room_count=2, settings=rates,
    )
    assert breakdown.base == Decimal("1000")
    assert breakdown.adult_surcharge == Decimal("100")
    assert breakdown.subtotal == Decimal("1100")


def test_room_with_only_children_has_no_negative_adult_surcharge(rates):
    breakdown = PriceCalculator.simple_breakdown(
        guest_type=EXTERNAL, adults=0, children=2, nights=1, settings=rates,
    )
    assert breakdown.adult_surcharge == Decimal("0")
    assert breakdown.subtotal == Decimal("600")


def test_components_are_rounded_half_up():
    rates = RateConfig.from_dict({
        "prices": {"utia": {"base": "100.5", "adult": "0", "child": "0.25"}},
    })
    breakdown = PriceCalculator.simple_breakdown(
        guest_type=UTIA, adults=1, children=2, nights=1, settings=rates,
    )
    assert breakdown.base == Decimal("101")
    assert breakdown.child_surcharge == Decimal("1")
    assert breakdown.subtotal == breakdown.base + breakdown.adult_surcharge + breakdown.child_surcharge


@pytest.mark.parametrize("toddlers", [1, 2, 5])
def test_toddlers_never_change_simple_price(rates, toddlers):
    without = PriceCalculator.calculate_simple(
        guest_type=EXTERNAL, adults=2, children=1, nights=3, settings=rates,
    )
    with_toddlers = PriceCalculator.calculate_simple(
        guest_type=EXTERNAL, adults=2, children=1, toddlers=toddlers, nights=3, settings=rates,
    )
    assert with_toddlers == without


def test_pricing_is_idempotent(rates):
    options = dict(guest_type=UTIA, adults=3, children=2, nights=4, room_count=2, settings=rates)
    assert PriceCalculator.calculate_simple(**options) == PriceCalculator.calculate_simple(**options)
    assert PriceCalculator.simple_breakdown(**options) == PriceCalculator.simple_breakdown(**options)


@pytest.mark.parametrize(
    "field, options",
    [
        ("adults", {"adults": -1}),
        ("children", {"children": -2}),
        ("nights", {"nights": -1}),
        ("room_count", {"room_count": 0}),
    ],
)
def test_negative_inputs_are_rejected(rates, field, options):
    with pytest.raises(InvalidInputError) as exc_info:
        PriceCalculator.calculate_simple(guest_type=UTIA, settings=rates, **options)
    assert exc_info.value.field == field


def test_zero_nights_are_rejected(rates):
    with pytest.raises(InvalidInputError) as exc_info:
        PriceCalculator.calculate_simple(guest_type=UTIA, adults=1, nights=0, settings=rates)
    assert exc_info.value.field == "nights"


def test_zero_night_bulk_stay_is_rejected(rates):
    with pytest.raises(InvalidInputError) as exc_info:
        PriceCalculator.calculate_mixed_bulk(utia_adults=2, nights=0, settings=rates)
    assert exc_info.value.field == "nights"


def test_zero_night_per_room_stay_is_rejected(rates):
    with pytest.raises(InvalidInputError):
        PriceCalculator.calculate_per_room_prices(
            rooms=["12"], guest_names=[adult(room_id="12")], nights=0, settings=rates,
        )


def test_unknown_guest_type_is_rejected(rates):
    with pytest.raises(InvalidInputError):
        PriceCalculator.calculate_simple(guest_type="vip", adults=1, settings=rates)


# ----- configuration errors -----

def test_missing_tier_raises_configuration_error():
    rates = RateConfig.from_dict({"prices": {"external": ROUND_RATES["prices"]["external"]}})
    with pytest.raises(ConfigurationError) as exc_info:
        PriceCalculator.calculate_simple(guest_type=UTIA, adults=1, settings=rates)
    assert exc_info.value.missing_field == "prices.utia"
    assert exc_info.value.status_code == 500


def test_incomplete_tier_is_rejected_when_parsed():
    with pytest.raises(ConfigurationError) as exc_info:
        RateConfig.from_dict({"prices": {"utia": {"base": 300, "adult": 50}}})
    assert exc_info.value.missing_field == "prices.utia.child"


@pytest.mark.parametrize("value", ["abc", -5, True, None])
def test_invalid_rate_values_are_rejected(value):
    with pytest.raises(ConfigurationError):
        RateConfig.from_dict({"prices": {"utia": {"base": value, "adult": 50, "child": 25}}})


def test_missing_settings_is_a_configuration_error():
    with pytest.raises(ConfigurationError) as exc_info:
        PriceCalculator.calculate_simple(guest_type=UTIA, adults=1, settings=None)
    assert exc_info.value.missing_field == "settings"


def test_missing_bulk_section_raises_configuration_error():
    rates = RateConfig.from_dict({"prices": ROUND_RATES["prices"]})
    with pytest.raises(ConfigurationError) as exc_info:
        PriceCalculator.calculate_mixed_bulk(utia_adults=1, nights=1, settings=rates)
    assert exc_info.value.missing_field == "bulk_prices"


def test_rate_config_round_trips_through_dict(rates):
    assert RateConfig.from_dict(rates.to_dict()) == rates


# ----- classification -----

def test_paying_utia_guest_makes_room_utia():
    assert PriceCalculator.classify_room([adult(EXTERNAL), child(UTIA)]) is UTIA


def test_utia_toddler_does_not_make_room_utia():
    assert PriceCalculator.classify_room([adult(EXTERNAL), toddler(UTIA)]) is EXTERNAL


def test_room_without_paying_guests_uses_stored_type_then_fallback():
    assert PriceCalculator.classify_room([toddler(EXTERNAL)], stored_type=UTIA) is UTIA
    assert PriceCalculator.classify_room([], fallback=UTIA) is UTIA
    assert PriceCalculator.classify_room([]) is EXTERNAL


# ----- per guest / composite -----

def composite_options(rates):
    return dict(
        rooms=["12", "22"],
        guest_names=[
            adult(UTIA, "12"),
            adult(EXTERNAL, "22"),
            adult(EXTERNAL, "22"),
        ],
        per_room_dates={"12": june(10, 12), "22": june(11, 13)},
        settings=rates,
    )


def test_composite_booking_prices_rooms_independently(rates):
    total = PriceCalculator.calculate_per_guest(**composite_options(rates))
    # room 12: 2 x 300; room 22: 2 x (500 + 100)
    assert total == Decimal("1800")


def test_composite_total_is_sum_of_per_room_breakdown(rates):
    options = composite_options(rates)
    breakdown = PriceCalculator.calculate_per_room_prices(**options)

    assert [item.room_id for item in breakdown] == ["12", "22"]
    assert [item.guest_type for item in breakdown] == [UTIA, EXTERNAL]
    assert [item.nights for item in breakdown] == [2, 2]
    assert sum(item.subtotal for item in breakdown) == PriceCalculator.calculate_per_guest(**options)


def test_per_room_guest_counters_are_used_without_guest_records(rates):
    total = PriceCalculator.calculate_per_guest(
        rooms=["12", "13"],
        nights=1,
        per_room_guests={
            "12": RoomGuests(adults=2, guest_type=UTIA),
            "13": RoomGuests(adults=1, children=1),
        },
        settings=rates,
    )
    # room 12: 300 + 50 (utia); room 13: 500 + 50 (fallback external)
    assert total == Decimal("900")


def test_toddler_records_never_change_per_guest_price(rates):
    options = composite_options(rates)
    before = PriceCalculator.calculate_per_guest(**options)
    options["guest_names"] = options["guest_names"] + [toddler(UTIA, "22")]
    assert PriceCalculator.calculate_per_guest(**options) == before


def test_per_room_dates_must_cover_every_room(rates):
    with pytest.raises(InvalidInputError):
        PriceCalculator.calculate_per_guest(
            rooms=["12", "22"],
            per_room_dates={"12": june(10, 12)},
            settings=rates,
        )


# ----- bulk -----

def test_bulk_booking_price(rates):
    total = PriceCalculator.calculate_mixed_bulk(
        utia_adults=4, external_adults=2, toddlers=1, nights=3, settings=rates,
    )
    assert total == Decimal("8700")
    assert total == PriceCalculator.calculate_mixed_bulk(
        utia_adults=4, external_adults=2, nights=3, settings=rates,
    )


def test_bulk_base_price_depends_only_on_nights(rates):
    empty = PriceCalculator.bulk_breakdown(nights=2, settings=rates)
    full = PriceCalculator.bulk_breakdown(
        utia_adults=10, external_adults=6, utia_children=3, external_children=4, nights=2, settings=rates,
    )
    assert empty.base == full.base == Decimal("4000")


def test_bulk_children_use_their_own_tier(rates):
    total = PriceCalculator.calculate_mixed_bulk(
        utia_children=2, external_children=2, nights=1, settings=rates,
    )
    assert total == Decimal("2000") + 2 * Decimal("0") + 2 * Decimal("50")


# ----- recomputation -----

def test_recompute_simple_booking(rates):
    booking = make_booking(
        rooms=["12"], dates=june(1, 3), guest_type=UTIA, adults=2, children=1,
        total_price=Decimal("750"),
    )
    quote = PriceCalculator.recompute(booking, rates)
    assert quote.mode == "simple"
    assert quote.total == Decimal("750")
    assert not quote.mismatch
    assert quote.note is None


def test_recompute_uses_current_rates_not_stored_total(rates):
    booking = make_booking(
        rooms=["12"], dates=june(1, 3), guest_type=UTIA, adults=2, children=1,
        total_price=Decimal("600"),
    )
    quote = PriceCalculator.recompute(booking, rates)
    assert quote.total == Decimal("750")
    assert quote.stored_total == Decimal("600")
    assert quote.mismatch
    assert "600" in quote.note


def test_recompute_composite_booking(rates):
    booking = make_booking(
        rooms=["12", "22"],
        dates=june(10, 13),
        per_room_dates={"12": june(10, 12), "22": june(11, 13)},
        guest_names=[adult(UTIA, "12"), adult(EXTERNAL, "22"), adult(EXTERNAL, "22")],
    )
    quote = PriceCalculator.recompute(booking, rates)
    assert quote.mode == "composite"
    assert quote.total == Decimal("1800")
    assert len(quote.breakdown) == 2


def test_recompute_booking_with_guest_records(rates):
    booking = make_booking(
        rooms=["12"], dates=june(1, 2), guest_names=[adult(UTIA), adult(EXTERNAL)],
    )
    quote = PriceCalculator.recompute(booking, rates)
    assert quote.mode == "per_guest"
    assert quote.total == Decimal("350")


def test_recompute_bulk_booking_from_guest_records(rates, rooms):
    guests = [adult(UTIA)] * 4 + [adult(EXTERNAL)] * 2 + [toddler()]
    booking = make_booking(
        rooms=[room.id for room in rooms], dates=june(1, 4), is_bulk_booking=True, guest_names=guests,
    )
    quote = PriceCalculator.recompute(booking, rates)
    assert quote.mode == "bulk"
    assert quote.total == Decimal("8700")


def test_recompute_bulk_booking_falls_back_to_counters(rates, rooms):
    booking = make_booking(
        rooms=[room.id for room in rooms], dates=june(1, 4), is_bulk_booking=True,
        guest_type=UTIA, adults=4, toddlers=2,
    )
    assert PriceCalculator.recompute(booking, rates).total == Decimal("7200")


def test_quote_serialises_breakdown(rates):
    booking = make_booking(rooms=["12"], dates=june(1, 3), adults=1)
    data = PriceCalculator.recompute(booking, rates).to_dict()
    assert data["total"] == Decimal("1000")
    assert data["breakdown"][0]["subtotal"] == Decimal("1000")
    assert data["mismatch"] is True


def test_price_of_new_booking_has_no_stored_total(rates, caplog):
    booking = make_booking(rooms=["12"], dates=june(1, 3), adults=1)

    with caplog.at_level("INFO", logger="apps.reservations.domain.pricing"):
        quote = PriceCalculator.price(booking, rates)

    assert quote.total == Decimal("1000")
    assert quote.stored_total is None
    assert not quote.mismatch
    assert not caplog.records
