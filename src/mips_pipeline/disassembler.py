"""Disassembler: instruction words to MIPS assembly text.

Output formats:
    R-format:       add $rd $rs $rt
    loads/stores:   lw $rt, offset ($rs)
    branches:       beq $rt, $rs, address 0x7a07c

Branch targets are computed from the instruction's own address:
address + 4 + (sign-extended offset << 2).
"""

from typing import Iterable, List, Optional, Union

from .decoder import (
    BRANCHES,
    FUNCTIONS,
    OPCODES,
    InstructionLike,
    canonicalize,
    parse_address,
    sign_extend,
)
from .errors import DecodeError


def decode(word: InstructionLike, address: Optional[int] = None) -> str:
    """Disassemble one instruction word.

    Args:
        word: Instruction as hex text, binary text or integer
        address: Address of the instruction, needed for branch targets
            (0 if omitted)

    Returns:
        Assembly text; "nop" for the zero word

    Raises:
        DecodeError: If the opcode or function code is unknown
    """
    instr = canonicalize(word)

    if instr.is_noop:
        return "nop"

    if instr.opcode == 0:
        name = FUNCTIONS.get(instr.function)
        if name is None:
            raise DecodeError(0, instr.function)
        return f"{name} ${instr.rd} ${instr.rs} ${instr.rt}"

    name = OPCODES.get(instr.opcode)
    if name is None:
        raise DecodeError(instr.opcode)

    offset = sign_extend(instr.immediate, 16)
    if name in BRANCHES:
        target = (address or 0) + 4 + (offset << 2)
        return f"{name} ${instr.rt}, ${instr.rs}, address 0x{target:04x}"
    return f"{name} ${instr.rt}, {offset} (${instr.rs})"


class Disassembler:
    """Disassembles a program laid out from a starting address.

    Attributes:
        starting_address: Address of the first instruction
    """

    def __init__(self, starting_address: Union[str, int] = 0):
        self.starting_address = parse_address(starting_address)

    def disassemble(self, instructions: Iterable[InstructionLike]) -> List[str]:
        """Disassemble a program.

        Returns:
            One "<address> <text>" line per instruction, address in hex
        """
        lines = []
        address = self.starting_address
        for word in instructions:
            lines.append(f"{address:x} {decode(word, address)}")
            address += 4
        return lines
