"""Typed values carried by pipeline register fields.

A field holds one of:
    - int: plain numeric value (register numbers, register contents, ALU results)
    - HexValue: an address or raw instruction word, rendered in hexadecimal
    - NotApplicable: the "don't care" sentinel, rendered as X

Control records (see control.py) are also stored in the ``control`` field.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Union


class NotApplicable:
    """Singleton "don't care" value.

    Compare with ``is NA``. The sentinel is falsy so it can never be mistaken
    for an asserted control bit.
    """

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "NA"

    def __str__(self) -> str:
        return "X"

    def __copy__(self):
        return self

    def __deepcopy__(self, memo):
        return self

    def __reduce__(self):
        return (NotApplicable, ())


NA = NotApplicable()


@dataclass(frozen=True)
class HexValue:
    """Integer shown in hexadecimal.

    Attributes:
        value: Unsigned integer value
        width: Minimum number of hex digits when rendered (0 = no padding);
            not part of equality
    """
    value: int
    width: int = field(default=0, compare=False)

    def __int__(self) -> int:
        return self.value

    def __index__(self) -> int:
        return self.value

    def __str__(self) -> str:
        return f"0x{self.value:0{self.width}x}"


FieldValue = Union[int, HexValue, NotApplicable]
FieldMap = Dict[str, Any]


def format_value(value: Any) -> str:
    """Render a field value the way the trace prints it.

    ints are shown in hex without prefix (negative values keep their sign),
    HexValue with its 0x prefix, NA as X.
    """
    if value is NA:
        return "X"
    if isinstance(value, HexValue):
        return str(value)
    if isinstance(value, bool):
        return str(int(value))
    if isinstance(value, int):
        return format(value, "x")
    return str(value)


def to_plain(value: Any) -> Any:
    """Convert a field value to a JSON-friendly Python value."""
    if value is NA:
        return None
    if isinstance(value, HexValue):
        return str(value)
    if hasattr(value, "to_dict"):
        return value.to_dict()
    return value
