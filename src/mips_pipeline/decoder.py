"""InstructionDecoder: 32-bit MIPS word to control signals.

Architecture:
    word (hex / binary / int) -> InstructionWord -> opcode lookup -> DecodeResult

Supported instructions:
    R-format (opcode 0): any function code; the ALU computes add (0x20) and
        sub (0x22)
    I-format: beq, bne, lw, lb, sw, sb

The all-zero word is the no-op and decodes to the NOOP control without
touching the opcode table. An I-format opcode outside the table raises
DecodeError.
"""

import logging
import re
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple, Union

from .control import (
    NOOP,
    BRANCH_CONTROL,
    LOAD_CONTROL,
    R_FORMAT_CONTROL,
    STORE_CONTROL,
    Control,
)
from .errors import DecodeError
from .fields import NA, FieldMap, FieldValue, HexValue

logger = logging.getLogger(__name__)


WORD_BITS = 32
WORD_MASK = (1 << WORD_BITS) - 1

# Opcode (bits 31-26) -> mnemonic for I-format instructions
OPCODES: Dict[int, str] = {
    0b000100: "beq",
    0b000101: "bne",
    0b100011: "lw",
    0b100000: "lb",
    0b101011: "sw",
    0b101000: "sb",
}

# Function code (bits 5-0) -> mnemonic for R-format instructions.
# The ALU computes add and sub; any other R-format word passes reg1 through.
FUNCTIONS: Dict[int, str] = {
    0b100000: "add",
    0b100010: "sub",
    0b100100: "and",
    0b100101: "or",
    0b100110: "xor",
    0b011000: "mult",
    0b011010: "div",
}

LOADS = {"lw", "lb"}
STORES = {"sw", "sb"}
BRANCHES = {"beq", "bne"}

InstructionLike = Union[str, int, HexValue, "InstructionWord"]


def sign_extend(value: int, bits: int = 16) -> int:
    """Interpret the low ``bits`` of value as a two's-complement integer.

    Args:
        value: Raw field value
        bits: Width of the field (default 16, the I-format immediate)

    Returns:
        Signed integer in [-2**(bits-1), 2**(bits-1) - 1]
    """
    value &= (1 << bits) - 1
    if value & (1 << (bits - 1)):
        return value - (1 << bits)
    return value


@dataclass(frozen=True)
class InstructionWord:
    """Canonical 32-bit instruction word with field accessors."""
    value: int

    @property
    def bits(self) -> str:
        """Fixed-width 32 character binary representation."""
        return format(self.value, "032b")

    @property
    def opcode(self) -> int:
        return (self.value >> 26) & 0x3F

    @property
    def rs(self) -> int:
        return (self.value >> 21) & 0x1F

    @property
    def rt(self) -> int:
        return (self.value >> 16) & 0x1F

    @property
    def rd(self) -> int:
        return (self.value >> 11) & 0x1F

    @property
    def function(self) -> int:
        return self.value & 0x3F

    @property
    def immediate(self) -> int:
        return self.value & 0xFFFF

    @property
    def is_noop(self) -> bool:
        return self.value == 0

    def to_hex(self) -> HexValue:
        return HexValue(self.value, width=8)

    def __str__(self) -> str:
        return str(self.to_hex())


def canonicalize(word: InstructionLike) -> InstructionWord:
    """Convert any accepted instruction encoding to an InstructionWord.

    Accepted forms:
        - int in [0, 2**32)
        - "0x..." hexadecimal text (or bare hex digits)
        - "0b..." binary text, or exactly 32 characters of 0/1

    Shorter encodings are left-padded with zero bits.

    Raises:
        ValueError: If the text cannot be parsed or the value needs more
            than 32 bits
    """
    if isinstance(word, InstructionWord):
        return word
    if isinstance(word, HexValue):
        value = word.value
    elif isinstance(word, bool):
        raise ValueError(f"Invalid instruction word: {word!r}")
    elif isinstance(word, int):
        value = word
    elif isinstance(word, str):
        text = word.strip().replace("_", "").lower()
        if not text:
            raise ValueError("Empty instruction word")
        if text.startswith("0x"):
            value = int(text[2:], 16)
        elif text.startswith("0b"):
            value = int(text[2:], 2)
        elif len(text) == WORD_BITS and set(text) <= {"0", "1"}:
            value = int(text, 2)
        else:
            value = int(text, 16)
    else:
        raise ValueError(f"Invalid instruction word: {word!r}")

    if value < 0 or value > WORD_MASK:
        raise ValueError(f"Instruction word does not fit in 32 bits: {word!r}")
    return InstructionWord(value)


def parse_address(address: Union[str, int, HexValue]) -> int:
    """Parse an address given as hex text ("0x70000" or "70000") or int."""
    if isinstance(address, HexValue):
        return address.value
    if isinstance(address, int):
        value = address
    else:
        text = address.strip().lower()
        if text.startswith("0x"):
            text = text[2:]
        value = int(text, 16)
    if value < 0:
        raise ValueError(f"Address must be non-negative: {address!r}")
    return value


@dataclass
class DecodeResult:
    """Result of decoding one instruction word.

    Attributes:
        word: The canonical instruction word
        control: ControlSignals, or NOOP for the zero word
        mnemonic: Instruction name ("nop" for the zero word)
        opcode: Bits 31-26
        function: Function code for R-format, NA otherwise
        s_e_offset: Sign-extended immediate for I-format, NA otherwise
        write_reg_15_11: Destination selector field (bits 15-11)
        write_reg_20_16: Destination selector field (bits 20-16)
        read_reg_1: First source register number (bits 25-21)
        read_reg_2: Second source register number (bits 20-16)
        incr_pc: Next-PC value passed alongside the word, if any
    """
    word: InstructionWord
    control: Control
    mnemonic: str
    opcode: int = 0
    function: FieldValue = NA
    s_e_offset: FieldValue = NA
    write_reg_15_11: int = 0
    write_reg_20_16: int = 0
    read_reg_1: int = 0
    read_reg_2: int = 0
    incr_pc: Optional[HexValue] = None

    @property
    def is_noop(self) -> bool:
        return self.control is NOOP

    def as_fields(self, register_values: Optional[Tuple[int, int]] = None) -> FieldMap:
        """Decode fields in the layout of the ID/EX register.

        Args:
            register_values: (readReg1Value, readReg2Value) read from the
                register file; omitted when None
        """
        if self.is_noop:
            return {"control": NOOP}
        fields = {
            "control": self.control,
            "writeReg_15_11": self.write_reg_15_11,
            "writeReg_20_16": self.write_reg_20_16,
        }
        if register_values is not None:
            fields["readReg1Value"], fields["readReg2Value"] = register_values
        fields["sEOffset"] = self.s_e_offset
        fields["function"] = self.function
        if self.incr_pc is not None:
            fields["incrPC"] = self.incr_pc
        return fields


class InstructionDecoder:
    """Stateless decoder from instruction words to control signals.

    Attributes:
        opcodes: I-format opcode table
        functions: R-format function code mnemonics
    """

    def __init__(self):
        self.opcodes = OPCODES
        self.functions = FUNCTIONS

    def decode(self, word: InstructionLike, incr_pc: Optional[HexValue] = None) -> DecodeResult:
        """Decode an instruction word.

        Args:
            word: Instruction as hex text, binary text or integer
            incr_pc: Address of the next instruction (carried through, not used
                for decode)

        Returns:
            DecodeResult for the word

        Raises:
            DecodeError: If the opcode is not supported
            ValueError: If the word cannot be parsed
        """
        instr = canonicalize(word)

        if instr.is_noop:
            return DecodeResult(word=instr, control=NOOP, mnemonic="nop", incr_pc=incr_pc)

        if instr.opcode == 0:
            result = self._decode_r_format(instr)
        else:
            result = self._decode_i_format(instr)

        result.write_reg_15_11 = instr.rd
        result.write_reg_20_16 = instr.rt
        result.read_reg_1 = instr.rs
        result.read_reg_2 = instr.rt
        result.incr_pc = incr_pc

        logger.debug("decoded %s as %s", instr, result.mnemonic)
        return result

    def _decode_r_format(self, instr: InstructionWord) -> DecodeResult:
        function = instr.function
        return DecodeResult(
            word=instr,
            control=R_FORMAT_CONTROL,
            mnemonic=self.functions.get(function, "r-format"),
            opcode=0,
            function=function,
            s_e_offset=NA,
        )

    def _decode_i_format(self, instr: InstructionWord) -> DecodeResult:
        mnemonic = self.opcodes.get(instr.opcode)

        if mnemonic in LOADS:
            control = LOAD_CONTROL
        elif mnemonic in STORES:
            control = STORE_CONTROL
        elif mnemonic in BRANCHES:
            control = BRANCH_CONTROL
        else:
            raise DecodeError(instr.opcode)

        return DecodeResult(
            word=instr,
            control=control,
            mnemonic=mnemonic,
            opcode=instr.opcode,
            function=NA,
            s_e_offset=sign_extend(instr.immediate, 16),
        )


def parse_program(source: str) -> List[str]:
    """Split program text into instruction words.

    Handles:
        - One or more words per line, separated by whitespace, commas or ;
        - Comments starting with #
        - Blank lines

    Args:
        source: Program text

    Returns:
        List of instruction word strings, in program order
    """
    words = []

    for line in source.split("\n"):
        line = re.sub(r'#.*$', '', line).strip()

        if not line:
            continue

        words.extend(token for token in re.split(r'[\s,;]+', line) if token)

    return words
