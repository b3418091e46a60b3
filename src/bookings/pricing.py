from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Union

from loguru import logger

from src.models import PassengerCategory

# Share of the adult base fare paid by each passenger category
CATEGORY_FARE_MULTIPLIERS = {
    PassengerCategory.ADULT: Decimal("1.00"),
    PassengerCategory.SENIOR: Decimal("0.80"),  # 20% discount
    PassengerCategory.CHILD: Decimal("0.70"),   # 30% discount
    PassengerCategory.INFANT: Decimal("0.00"),  # free, no seat
}

CENTS = Decimal("0.01")


def normalize_category(category: str) -> str:
    return (category or "").strip().lower()


def price(base_fare: Union[Decimal, int, float, str], category: str) -> Decimal:
    """Fare for one passenger of ``category`` on a departure with ``base_fare``.

    Unknown categories are charged the adult fare.
    """
    normalized = normalize_category(category)
    try:
        multiplier = CATEGORY_FARE_MULTIPLIERS[PassengerCategory(normalized)]
    except ValueError:
        logger.warning("Unknown passenger category {!r}, pricing as adult", category)
        multiplier = CATEGORY_FARE_MULTIPLIERS[PassengerCategory.ADULT]

    return (Decimal(str(base_fare)) * multiplier).quantize(CENTS, rounding=ROUND_HALF_UP)


def consumes_seat(category: str) -> bool:
    return normalize_category(category) != PassengerCategory.INFANT.value


def seats_needed(categories: Iterable[str]) -> int:
    """Number of seats taken by passengers of the given categories"""
    return sum(1 for category in categories if consumes_seat(category))
