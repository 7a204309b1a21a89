"""RegisterFile and MainMemory: architectural state owned by the engine.

State Components:
    - RegisterFile: 32 word-sized registers, seeded register[0] = 0 and
      register[i] = 0x100 + i
    - MainMemory: byte-addressable store, seeded memory[a] = a % 256

Both mutate in place. Register 0 is an ordinary register here: it is seeded
with zero but can be overwritten like any other.
"""

from copy import deepcopy
from typing import List

from .errors import MemoryAccessError


WORD_MASK = 0xFFFFFFFF
BYTE_MASK = 0xFF

REGISTER_SEED_BASE = 0x100


class RegisterFile:
    """General-purpose register file.

    Attributes:
        content: List of register values, index 0 through size - 1
    """

    def __init__(self, size: int = 32):
        if size < 1:
            raise ValueError(f"Register file needs at least one register, got {size}")
        self.content: List[int] = [0] + [REGISTER_SEED_BASE + i for i in range(1, size)]

    def __len__(self) -> int:
        return len(self.content)

    def read(self, index: int) -> int:
        """Get value of a register.

        Raises:
            IndexError: If the register number is out of range
        """
        self._check(index)
        return self.content[index]

    def write(self, index: int, value: int) -> None:
        """Set a register, truncating the value to one word.

        Raises:
            IndexError: If the register number is out of range
        """
        self._check(index)
        self.content[index] = value & WORD_MASK

    def snapshot(self) -> List[int]:
        """Copy of all register values, for tracing."""
        return list(self.content)

    def validate(self) -> bool:
        """Check that every register holds an unsigned 32-bit int."""
        for value in self.content:
            if not isinstance(value, int) or value < 0 or value > WORD_MASK:
                return False
        return True

    def _check(self, index: int) -> None:
        if not 0 <= index < len(self.content):
            raise IndexError(f"Invalid register: {index}")

    def __str__(self) -> str:
        return "Regs: " + ", ".join(format(value, "x") for value in self.content)


class MainMemory:
    """Flat byte-addressable main memory.

    Attributes:
        content: List of byte values
    """

    def __init__(self, size: int = 0x800):
        if size < 1:
            raise ValueError(f"Main memory needs at least one byte, got {size}")
        self.content: List[int] = [address % 256 for address in range(size)]

    @property
    def size(self) -> int:
        return len(self.content)

    def __len__(self) -> int:
        return len(self.content)

    def read(self, address: int) -> int:
        """Read one byte.

        Raises:
            MemoryAccessError: If address is outside memory
        """
        self.check_address(address)
        return self.content[address]

    def write(self, address: int, value: int) -> None:
        """Write the low byte of value.

        Raises:
            MemoryAccessError: If address is outside memory
        """
        self.check_address(address)
        self.content[address] = value & BYTE_MASK

    def read_block(self, start: int, length: int) -> List[int]:
        """Copy of ``length`` consecutive bytes starting at ``start``."""
        self.check_address(start)
        self.check_address(start + length - 1)
        return self.content[start:start + length]

    def write_block(self, start: int, values: List[int]) -> None:
        """Write consecutive bytes starting at ``start``."""
        self.check_address(start)
        self.check_address(start + len(values) - 1)
        for offset, value in enumerate(values):
            self.content[start + offset] = value & BYTE_MASK

    def snapshot(self) -> List[int]:
        return deepcopy(self.content)

    def check_address(self, address: int) -> None:
        """Raise MemoryAccessError unless address is inside memory."""
        if not 0 <= address < len(self.content):
            raise MemoryAccessError(address, len(self.content))
