"""Tests for the disassembler."""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import pytest
from mips_pipeline.disassembler import Disassembler, decode
from mips_pipeline.errors import DecodeError


PROGRAM = [
    "0x022DA822",
    "0x8EF30018",
    "0x12A70004",
    "0x02689820",
    "0xAD930018",
    "0x02697824",
    "0xAD8FFFF4",
    "0x018C6020",
    "0x02A4A825",
    "0x158FFFF6",
    "0x8E59FFF0",
]

LISTING = [
    "7a060 sub $21 $17 $13",
    "7a064 lw $19, 24 ($23)",
    "7a068 beq $7, $21, address 0x7a07c",
    "7a06c add $19 $19 $8",
    "7a070 sw $19, 24 ($12)",
    "7a074 and $15 $19 $9",
    "7a078 sw $15, -12 ($12)",
    "7a07c add $12 $12 $12",
    "7a080 or $21 $21 $4",
    "7a084 bne $15, $12, address 0x7a060",
    "7a088 lw $25, -16 ($18)",
]


class TestDisassembleProgram:
    """Test whole-program disassembly."""

    def test_listing(self):
        assert Disassembler("7A060").disassemble(PROGRAM) == LISTING

    def test_binary_input(self):
        words = [format(int(word, 16), "032b") for word in PROGRAM]
        assert Disassembler(0x7A060).disassemble(words) == LISTING

    def test_backward_branch_target(self):
        """Negative branch offsets are sign-extended."""
        assert LISTING[9].endswith("address 0x7a060")


class TestDecodeWord:
    """Test single-word decode."""

    def test_noop(self):
        assert decode(0) == "nop"

    def test_pipeline_instructions(self):
        assert decode("0xa1020000") == "sb $2, 0 ($8)"
        assert decode("0x810AFFFC") == "lb $10, -4 ($8)"
        assert decode("0x00624022") == "sub $8 $3 $2"

    def test_branch_without_address(self):
        assert decode("0x12A70004") == "beq $7, $21, address 0x0014"

    def test_unknown_opcode(self):
        with pytest.raises(DecodeError):
            decode("0xFC000000")

    def test_unknown_function(self):
        with pytest.raises(DecodeError) as exc_info:
            decode("0x0000003F")
        assert exc_info.value.function == 0x3F
