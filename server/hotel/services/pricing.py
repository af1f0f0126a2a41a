"""Stay arithmetic shared by availability and reservation creation."""

from datetime import date

from ..core.exceptions import InvalidRangeError


def overlaps(start_a: date, end_a: date, start_b: date, end_b: date) -> bool:
    """
    Half-open interval overlap test for ``[start_a, end_a)`` and ``[start_b, end_b)``.

    Back-to-back stays, where one ends on the day the other starts, do not
    overlap.
    """
    return start_a < end_b and end_a > start_b


def count_nights(check_in: date, check_out: date) -> int:
    """Whole nights between the two dates; the check-out day is not a night."""
    return (check_out - check_in).days


def quote_stay(nightly_amount: int, check_in: date, check_out: date) -> int:
    """
    Total price of a stay in minor units.

    Raises:
        InvalidRangeError: If the stay has no nights
    """
    nights = count_nights(check_in, check_out)
    if nights < 1:
        raise InvalidRangeError(check_in, check_out)
    return nightly_amount * nights
