"""Exceptions raised by the pipeline simulator.

Every fatal condition the datapath can hit derives from PipelineError so
callers can catch the whole family at once (the CLI does exactly that).
"""

from typing import Optional


class PipelineError(RuntimeError):
    """Base class for all fatal pipeline conditions."""


class DecodeError(PipelineError):
    """Instruction word could not be mapped to a supported instruction.

    Attributes:
        opcode: 6-bit opcode field (bits 31-26)
        function: 6-bit function field for R-format words, None otherwise
    """

    def __init__(self, opcode: int, function: Optional[int] = None):
        self.opcode = opcode
        self.function = function
        if function is None:
            message = f"Unknown opcode: 0x{opcode:02x}"
        else:
            message = f"Unsupported function code 0x{function:02x} for opcode 0x{opcode:02x}"
        super().__init__(message)


class InconsistentControlError(PipelineError):
    """A control signal reached a stage holding a value that stage cannot act on."""

    def __init__(self, signal: str, value):
        self.signal = signal
        self.value = value
        super().__init__(f"Expecting 1 or 0 for {signal}. Got {value!r}.")


class MemoryAccessError(PipelineError):
    """Address outside the bounds of main memory."""

    def __init__(self, address: int, size: int):
        self.address = address
        self.size = size
        super().__init__(f"Address 0x{address:x} outside main memory (size 0x{size:x})")


class PipelineHaltedError(PipelineError):
    """The engine stopped after a fatal error and must be reset."""
