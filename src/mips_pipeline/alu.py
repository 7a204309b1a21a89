"""ALU: frozen registry of arithmetic primitives used by the Execute stage.

Operation Keys:
    ALU_ADD: reg1 + reg2 (R-format add)
    ALU_SUB: reg1 - reg2 (R-format sub)
    ALU_ADDRESS: reg1 + sign-extended offset (loads, stores, branches)

Every primitive is a pure function (a, b) -> int. Results are truncated to
an unsigned 32-bit word, as the datapath is one word wide.
"""

from typing import Callable, Dict, Optional

from .decoder import WORD_MASK
from .fields import NA, FieldValue


ADD_FUNCTION = 0x20
SUB_FUNCTION = 0x22


class ALU:
    """Registry of ALU operations.

    The registry is frozen after initialization so the set of operations
    cannot change while a pipeline is running.

    Attributes:
        _operations: Dictionary mapping operation keys to functions
        _frozen: Whether the registry is locked against modifications
    """

    def __init__(self):
        self._operations: Dict[str, Callable[[int, int], int]] = {}
        self._frozen = False
        self.register("ALU_ADD", lambda a, b: a + b)
        self.register("ALU_SUB", lambda a, b: a - b)
        self.register("ALU_ADDRESS", lambda base, offset: base + offset)
        self.freeze()

    def register(self, key: str, operation: Callable[[int, int], int]) -> None:
        """Register an operation.

        Raises:
            RuntimeError: If the registry is frozen
            ValueError: If key is already registered
        """
        if self._frozen:
            raise RuntimeError("Cannot register operations: ALU is frozen")
        if key in self._operations:
            raise ValueError(f"Operation already registered: {key}")
        self._operations[key] = operation

    def freeze(self) -> None:
        self._frozen = True

    def is_frozen(self) -> bool:
        return self._frozen

    def get_valid_keys(self) -> set:
        return set(self._operations.keys())

    def select(self, function: FieldValue) -> str:
        """Choose the operation key from the function field of ID/EX.

        sub and add are picked by function code; everything else (I-format,
        where function is NA, and other R-format codes) takes reg1 plus the
        offset, which is 0 for R-format.
        """
        if function == SUB_FUNCTION:
            return "ALU_SUB"
        if function == ADD_FUNCTION:
            return "ALU_ADD"
        return "ALU_ADDRESS"

    def execute(self, key: str, a: int, b: int) -> int:
        """Run an operation and truncate the result to 32 bits.

        Raises:
            KeyError: If key is not registered
        """
        if key not in self._operations:
            raise KeyError(f"Unknown ALU operation: {key}")
        return self._operations[key](a, b) & WORD_MASK

    def compute(self, function: FieldValue, reg1: int, reg2: int, offset: FieldValue) -> int:
        """Compute the Execute stage result for one instruction.

        Args:
            function: Function code from ID/EX (NA for I-format)
            reg1: Value of the first source register
            reg2: Value of the second source register
            offset: Sign-extended immediate (NA for R-format)
        """
        key = self.select(function)
        if key == "ALU_ADDRESS":
            return self.execute(key, reg1, 0 if offset is NA else offset)
        return self.execute(key, reg1, reg2)


_alu: Optional[ALU] = None


def get_alu() -> ALU:
    """Get the shared, frozen ALU instance."""
    global _alu
    if _alu is None:
        _alu = ALU()
    return _alu
