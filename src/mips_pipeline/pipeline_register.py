"""PipelineRegister: double-buffered register between two pipeline stages.

Each register has a write side (filled by the upstream stage during the
current cycle) and a read side (what the downstream stage sees, as left by
the previous clock edge). ``commit`` is the clock edge: the read side
becomes a deep copy of the write side, so nothing written afterwards can
leak into what a stage already read.
"""

from copy import deepcopy
from typing import Dict, Generic, Mapping, Optional, Tuple, TypeVar

from .fields import FieldMap


M = TypeVar("M", bound=Dict)


class PipelineRegister(Generic[M]):
    """Named write/read pair.

    Attributes:
        title: Display name, e.g. "IF/ID"
        write_side: Fields written during the current cycle
        read_side: Fields visible to the downstream stage this cycle
    """

    def __init__(self, title: str, initial: Optional[M] = None):
        self.title = title
        initial = initial if initial is not None else {}
        self._initial = deepcopy(initial)
        self.write_side: M = deepcopy(initial)
        self.read_side: M = deepcopy(initial)

    def write(self, fields: Optional[Mapping] = None, **kwargs) -> None:
        """Merge fields into the write side.

        Fields not mentioned keep whatever value they held, like a hardware
        register that holds state until it is rewritten.
        """
        if fields:
            self.write_side.update(fields)
        if kwargs:
            self.write_side.update(kwargs)

    def replace(self, fields: Mapping) -> None:
        """Replace the whole write side."""
        self.write_side = dict(fields)

    def read(self) -> M:
        """Read side as populated by the last commit."""
        return self.read_side

    def commit(self) -> None:
        """Clock edge: copy write side to read side by value."""
        self.read_side = deepcopy(self.write_side)

    def reset(self) -> None:
        """Restore both sides to the construction-time contents."""
        self.write_side = deepcopy(self._initial)
        self.read_side = deepcopy(self._initial)

    def snapshot(self) -> Tuple[FieldMap, FieldMap]:
        """Independent copies of (write, read)."""
        return deepcopy(self.write_side), deepcopy(self.read_side)

    def __repr__(self) -> str:
        return f"PipelineRegister({self.title!r}, write={self.write_side!r}, read={self.read_side!r})"
