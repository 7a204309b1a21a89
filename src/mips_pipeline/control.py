"""Control records carried through the pipeline.

The decoder produces a full ControlSignals record for ID/EX. Each later
register only carries the bits its downstream stages still need:

    ID/EX   ControlSignals     regWrite regDest memToReg memRead memWrite aluSrc branch aluOp
    EX/MEM  MemoryControl      memWrite memRead memToReg regWrite branch
    MEM/WB  WritebackControl   memToReg regWrite

A bubble is represented by the single NOOP value in every register.
"""

from dataclasses import dataclass, fields
from typing import Dict, Union

from .fields import NA, FieldValue, to_plain


R_FORMAT = "R"
I_FORMAT = "I"


class NoOpControl:
    """The all-zero control word (pipeline bubble)."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "NOOP"

    def __str__(self) -> str:
        return "000000000"

    def __copy__(self):
        return self

    def __deepcopy__(self, memo):
        return self

    def __reduce__(self):
        return (NoOpControl, ())

    def to_dict(self) -> str:
        return str(self)


NOOP = NoOpControl()


def is_noop(control) -> bool:
    """Check whether a control field holds the bubble."""
    return isinstance(control, NoOpControl)


class _ControlRecord:
    """Shared rendering for the control dataclasses.

    Attribute names are snake_case; ``display_names`` maps them to the
    camelCase names used in traces.
    """

    display_names: Dict[str, str] = {}

    def items(self):
        for f in fields(self):
            if f.name == "format":
                continue
            yield self.display_names.get(f.name, f.name), getattr(self, f.name)

    def to_dict(self) -> Dict[str, object]:
        return {name: to_plain(value) for name, value in self.items()}


@dataclass(frozen=True)
class ControlSignals(_ControlRecord):
    """Decoded control signals for one instruction.

    Attributes:
        reg_write: 1 if the instruction writes a register
        reg_dest: 1 selects bits [15:11] as destination, 0 selects [20:16]
        mem_to_reg: 1 writes loaded data back, 0 writes the ALU result
        mem_read: 1 for loads
        mem_write: 1 for stores
        alu_src: 1 if the second ALU operand is the immediate
        branch: 1 for branches
        alu_op: 2 for R-format (function code decides), 0 otherwise
        format: R_FORMAT or I_FORMAT
    """
    reg_write: FieldValue = 0
    reg_dest: FieldValue = 0
    mem_to_reg: FieldValue = 0
    mem_read: FieldValue = 0
    mem_write: FieldValue = 0
    alu_src: FieldValue = 0
    branch: FieldValue = 0
    alu_op: FieldValue = 0
    format: str = I_FORMAT

    display_names = {
        "reg_write": "regWrite",
        "reg_dest": "regDest",
        "mem_to_reg": "memToReg",
        "mem_read": "memRead",
        "mem_write": "memWrite",
        "alu_src": "aluSrc",
        "branch": "branch",
        "alu_op": "aluOp",
    }

    def memory_control(self) -> "MemoryControl":
        """Bits forwarded from EX to EX/MEM."""
        return MemoryControl(
            mem_write=self.mem_write,
            mem_read=self.mem_read,
            mem_to_reg=self.mem_to_reg,
            reg_write=self.reg_write,
            branch=self.branch,
        )


@dataclass(frozen=True)
class MemoryControl(_ControlRecord):
    """Control bits held in EX/MEM."""
    mem_write: FieldValue = 0
    mem_read: FieldValue = 0
    mem_to_reg: FieldValue = 0
    reg_write: FieldValue = 0
    branch: FieldValue = 0

    display_names = ControlSignals.display_names

    def writeback_control(self) -> "WritebackControl":
        """Bits forwarded from MEM to MEM/WB."""
        return WritebackControl(mem_to_reg=self.mem_to_reg, reg_write=self.reg_write)


@dataclass(frozen=True)
class WritebackControl(_ControlRecord):
    """Control bits held in MEM/WB."""
    mem_to_reg: FieldValue = 0
    reg_write: FieldValue = 0

    display_names = ControlSignals.display_names


Control = Union[ControlSignals, MemoryControl, WritebackControl, NoOpControl]


# Control words per instruction class (aluOp and format are filled in by the decoder)
R_FORMAT_CONTROL = ControlSignals(
    reg_write=1, reg_dest=1, mem_to_reg=0, mem_read=0, mem_write=0,
    alu_src=0, branch=0, alu_op=2, format=R_FORMAT,
)
LOAD_CONTROL = ControlSignals(
    reg_write=1, reg_dest=0, mem_to_reg=1, mem_read=1, mem_write=0,
    alu_src=1, branch=0, alu_op=0,
)
STORE_CONTROL = ControlSignals(
    reg_write=0, reg_dest=NA, mem_to_reg=NA, mem_read=0, mem_write=1,
    alu_src=1, branch=0, alu_op=0,
)
BRANCH_CONTROL = ControlSignals(
    reg_write=0, reg_dest=NA, mem_to_reg=NA, mem_read=0, mem_write=0,
    alu_src=0, branch=1, alu_op=0,
)
