"""Typed view of legacy ``coordinateFields`` elements.

Legacy blobs are JSON arrays of freeform objects written by the old canvas
designer. Each element is parsed into exactly one of ``TextField``,
``DateField``, ``TableField`` or ``SignatureField`` so that callers branch on
the variant instead of probing for properties. Coordinates stay in the
designer's pixel space here; conversion to page ratios is done by the
migration service.
"""

import json
from enum import Enum
from typing import Any, Dict, List, Literal, Optional, Type, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from docfields.core.exceptions import ParseFailureError
from docfields.utils.logging import get_logger

LOGGER = get_logger(__name__)

# Pixel defaults the legacy designer used for elements without geometry
DEFAULT_PIXEL_WIDTH = 100.0
DEFAULT_PIXEL_HEIGHT = 30.0


class LegacyFieldKind(str, Enum):
    TEXT = "text"
    DATE = "date"
    TABLE = "table"
    SIGNATURE = "signature"


class LegacyFieldBase(BaseModel):
    """Attributes shared by every legacy element.

    ``index`` is the element's 0-based position in the source array and is
    assigned before any filtering, so generated keys stay stable.
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True, allow_inf_nan=False)

    index: int
    id: Optional[str] = None
    label: Optional[str] = None
    required: bool = False
    page: int = 1
    x: float = 0.0
    y: float = 0.0
    width: float = DEFAULT_PIXEL_WIDTH
    height: float = DEFAULT_PIXEL_HEIGHT
    value: Optional[str] = None

    @field_validator("id", "label", "value", mode="before")
    @classmethod
    def _coerce_text(cls, v: Any) -> Any:
        if v is None or isinstance(v, str):
            return v
        if isinstance(v, (dict, list)):
            return json.dumps(v, ensure_ascii=False)
        if isinstance(v, bool):
            return "true" if v else "false"
        return str(v)

    @field_validator("required", mode="before")
    @classmethod
    def _coerce_required(cls, v: Any) -> bool:
        if v is None:
            return False
        if isinstance(v, bool):
            return v
        if isinstance(v, (int, float)):
            return v != 0
        if isinstance(v, str):
            return v.strip().lower() == "true"
        return False

    @field_validator("page", mode="before")
    @classmethod
    def _coerce_page(cls, v: Any) -> Any:
        if v is None:
            return 1
        if isinstance(v, float) and v.is_integer():
            return int(v)
        return v

    @field_validator("x", "y", mode="before")
    @classmethod
    def _default_position(cls, v: Any) -> Any:
        return 0.0 if v is None else v

    @field_validator("width", mode="before")
    @classmethod
    def _default_width(cls, v: Any) -> Any:
        return DEFAULT_PIXEL_WIDTH if v is None else v

    @field_validator("height", mode="before")
    @classmethod
    def _default_height(cls, v: Any) -> Any:
        return DEFAULT_PIXEL_HEIGHT if v is None else v

    @property
    def field_key(self) -> str:
        return self.id if self.id else f"field_{self.index}"

    @property
    def display_label(self) -> str:
        return self.label if self.label is not None else f"Field {self.index + 1}"


class TextField(LegacyFieldBase):
    """Free text input (also covers the designer's textarea/number inputs)."""

    kind: Literal[LegacyFieldKind.TEXT] = LegacyFieldKind.TEXT
    input_type: str = "text"


class DateField(LegacyFieldBase):
    kind: Literal[LegacyFieldKind.DATE] = LegacyFieldKind.DATE


class SignatureField(LegacyFieldBase):
    kind: Literal[LegacyFieldKind.SIGNATURE] = LegacyFieldKind.SIGNATURE


class TableField(LegacyFieldBase):
    """Grid element with nested row/column cell data.

    The normalized field model has no representation for cells, so table
    elements are not turned into template fields.
    """

    kind: Literal[LegacyFieldKind.TABLE] = LegacyFieldKind.TABLE
    table_data: Optional[Dict[str, Any]] = Field(default=None, alias="tableData")
    rows: Optional[int] = None
    columns_count: Optional[int] = Field(default=None, alias="columnsCount")


LegacyField = Union[TextField, DateField, TableField, SignatureField]

_TYPE_ALIASES: Dict[str, Type[LegacyFieldBase]] = {
    "": TextField,
    "text": TextField,
    "textarea": TextField,
    "number": TextField,
    "date": DateField,
    "table": TableField,
    "signature": SignatureField,
}


def _resolve_variant(raw: Dict[str, Any], index: int) -> Type[LegacyFieldBase]:
    type_name = raw.get("type")
    if type_name is None:
        return TableField if raw.get("tableData") is not None else TextField

    normalized = str(type_name).strip().lower()
    variant = _TYPE_ALIASES.get(normalized)
    if variant is None:
        LOGGER.warning(f"Unknown legacy field type '{type_name}' at index {index}, treating as text")
        return TextField
    return variant


def parse_legacy_element(raw: Any, index: int) -> LegacyField:
    """Parse one legacy array element into its typed variant.

    Args:
        raw: Decoded JSON element
        index: 0-based position of the element in the source array

    Raises:
        ParseFailureError: If the element is not an object or carries
            non-numeric geometry
    """
    if not isinstance(raw, dict):
        raise ParseFailureError(
            f"Legacy field at index {index} is not a JSON object: {type(raw).__name__}"
        )

    variant = _resolve_variant(raw, index)
    payload = {k: v for k, v in raw.items() if k not in ("index", "kind")}
    payload["index"] = index
    if variant is TextField and raw.get("type") is not None:
        payload["input_type"] = str(raw["type"])

    try:
        return variant.model_validate(payload)
    except ValidationError as e:
        raise ParseFailureError(
            f"Legacy field at index {index} is invalid: {e.error_count()} error(s)",
            original_error=e,
        )


def load_legacy_array(blob: Optional[str]) -> Optional[List[Any]]:
    """Decode a legacy blob.

    Returns:
        The decoded list, or None when the blob is empty or valid JSON that is
        not an array (both are skip conditions, not failures)

    Raises:
        ParseFailureError: If the blob is not valid JSON
    """
    if blob is None or not blob.strip():
        return None

    try:
        decoded = json.loads(blob)
    except json.JSONDecodeError as e:
        raise ParseFailureError(f"coordinateFields is not valid JSON: {e.msg}", original_error=e)

    if not isinstance(decoded, list):
        return None
    return decoded


def parse_legacy_elements(items: List[Any]) -> List[LegacyField]:
    """Parse every element of a decoded legacy array, preserving order."""
    return [parse_legacy_element(raw, index) for index, raw in enumerate(items)]
