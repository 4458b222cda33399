"""Room occupancy and price arithmetic for bookings."""

from dataclasses import dataclass
from typing import Iterable

from ..core.exceptions import ValidationError

# Occupants per room type
OCCUPANCY: dict[str, int] = {
    "quad": 4,
    "triple": 3,
    "double": 2,
    "single": 1,
}

ROOM_TYPES = tuple(OCCUPANCY)


@dataclass(frozen=True)
class RoomSelection:
    """Selected quantity of one room type at its per-occupant price."""

    room_type: str
    quantity: int
    price: int


def occupancy(room_type: str) -> int:
    """Occupants per room of the given type."""
    try:
        return OCCUPANCY[room_type]
    except KeyError:
        raise ValidationError(
            detail=f"Unknown room type '{room_type}'",
            code="UNKNOWN_ROOM_TYPE",
            errors={"room_type": room_type, "allowed": list(ROOM_TYPES)},
        )


def room_occupants(selection: RoomSelection) -> int:
    return selection.quantity * occupancy(selection.room_type)


def room_subtotal(selection: RoomSelection) -> int:
    """quantity x price x occupancy."""
    return selection.quantity * selection.price * occupancy(selection.room_type)


def total_occupants(selections: Iterable[RoomSelection]) -> int:
    return sum(room_occupants(selection) for selection in selections)


def total_price(selections: Iterable[RoomSelection]) -> int:
    return sum(room_subtotal(selection) for selection in selections)


def adjust_quantity(quantity: int, delta: int) -> int:
    """Step a room quantity, never going below zero."""
    return max(0, quantity + delta)


def lowest_price(prices: Iterable[int]) -> int:
    """Cheapest per-occupant price, 0 when there is none."""
    return min(prices, default=0)


def lowest_package_price(departure_prices: Iterable[Iterable[int]]) -> int:
    """Cheapest per-occupant price across every departure of a package."""
    return lowest_price(price for prices in departure_prices for price in prices)
