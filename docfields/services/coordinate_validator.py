"""Geometry rules for page-ratio field coordinates.

Coordinates are fractions of the page width/height so that a field renders at
the same place regardless of the viewer's resolution. A field must lie fully
inside the unit page:

- ``0 <= x <= 1`` and ``0 <= y <= 1``
- ``0 < width <= 1`` and ``0 < height <= 1``
- ``x + width <= 1`` and ``y + height <= 1``
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Union

from docfields.core.exceptions import InvalidGeometryError

Number = Union[Decimal, int, float, str]

ZERO = Decimal("0")
ONE = Decimal("1")
# Scale of the Numeric(10, 8) coordinate columns
RATIO_QUANTUM = Decimal("0.00000001")


def to_ratio(value: Number, name: str = "value") -> Decimal:
    """Convert a coordinate to the ``Decimal`` that will be stored.

    The value is rounded to the column scale here, so bounds are checked
    against exactly what gets persisted.

    Raises:
        InvalidGeometryError: If the value is not a finite number
    """
    if isinstance(value, bool):
        raise InvalidGeometryError(f"{name} must be a number, got a boolean", bound=name)
    if isinstance(value, Decimal):
        ratio = value
    else:
        try:
            # str() keeps 0.1 as Decimal("0.1") instead of its binary expansion
            ratio = Decimal(str(value))
        except (InvalidOperation, ValueError) as e:
            raise InvalidGeometryError(
                f"{name} must be a number, got {value!r}", bound=name, original_error=e
            )
    if not ratio.is_finite():
        raise InvalidGeometryError(f"{name} must be finite, got {value!r}", bound=name)
    try:
        return ratio.quantize(RATIO_QUANTUM, rounding=ROUND_HALF_UP)
    except InvalidOperation as e:
        raise InvalidGeometryError(
            f"{name} is out of range, got {value!r}", bound=name, original_error=e
        )


def validate(x: Number, y: Number, width: Number, height: Number) -> None:
    """Check that a field rectangle fits inside the unit page.

    Raises:
        InvalidGeometryError: Naming the first violated bound
    """
    x = to_ratio(x, "x")
    y = to_ratio(y, "y")
    width = to_ratio(width, "width")
    height = to_ratio(height, "height")

    if x < ZERO or x > ONE:
        raise InvalidGeometryError("X coordinate must be between 0 and 1", bound="x")
    if y < ZERO or y > ONE:
        raise InvalidGeometryError("Y coordinate must be between 0 and 1", bound="y")
    if width <= ZERO or width > ONE:
        raise InvalidGeometryError(
            "Width must be greater than 0 and at most 1", bound="width"
        )
    if height <= ZERO or height > ONE:
        raise InvalidGeometryError(
            "Height must be greater than 0 and at most 1", bound="height"
        )
    if x + width > ONE:
        raise InvalidGeometryError("X + Width must not exceed 1", bound="x+width")
    if y + height > ONE:
        raise InvalidGeometryError("Y + Height must not exceed 1", bound="y+height")


def validate_page(page: int) -> None:
    """Pages are 1-based.

    Raises:
        InvalidGeometryError: If ``page`` is not an integer >= 1
    """
    if isinstance(page, bool) or not isinstance(page, int) or page < 1:
        raise InvalidGeometryError(f"Page must be an integer >= 1, got {page!r}", bound="page")

