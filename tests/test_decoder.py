"""Tests for InstructionDecoder and instruction word parsing."""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import pytest
from mips_pipeline.control import (
    NOOP,
    BRANCH_CONTROL,
    LOAD_CONTROL,
    R_FORMAT,
    R_FORMAT_CONTROL,
    STORE_CONTROL,
    ControlSignals,
)
from mips_pipeline.decoder import (
    InstructionDecoder,
    InstructionWord,
    canonicalize,
    parse_address,
    parse_program,
    sign_extend,
)
from mips_pipeline.errors import DecodeError
from mips_pipeline.fields import NA, HexValue


@pytest.fixture
def decoder():
    return InstructionDecoder()


class TestSignExtend:
    """Test two's-complement sign extension of the immediate."""

    def test_negative(self):
        """1111111111111100 is -4."""
        assert sign_extend(int("1111111111111100", 2)) == -4

    def test_positive(self):
        """0000000000000100 is 4."""
        assert sign_extend(int("0000000000000100", 2)) == 4

    def test_bounds(self):
        """Extremes of the 16-bit range."""
        assert sign_extend(0x7FFF) == 32767
        assert sign_extend(0x8000) == -32768
        assert sign_extend(0xFFFF) == -1

    def test_ignores_high_bits(self):
        """Only the low bits of the field count."""
        assert sign_extend(0x1FFFC, 16) == -4


class TestCanonicalize:
    """Test accepted instruction encodings."""

    def test_hex_text(self):
        assert canonicalize("0x00a63820").value == 0x00A63820
        assert canonicalize("0XA1020000").value == 0xA1020000

    def test_bare_hex_text(self):
        assert canonicalize("a1020000").value == 0xA1020000

    def test_binary_text(self):
        assert canonicalize("0b101").value == 5
        word = "10100001000000100000000000000000"
        assert canonicalize(word).value == 0xA1020000

    def test_integer(self):
        assert canonicalize(0x810AFFFC).value == 0x810AFFFC

    def test_hex_value(self):
        assert canonicalize(HexValue(0x1234, width=8)).value == 0x1234

    def test_short_encoding_is_zero_padded(self):
        """Fewer than 32 bits is padded on the left, not an error."""
        word = canonicalize("0x20")
        assert word.bits == "0" * 26 + "100000"
        assert len(word.bits) == 32

    def test_too_wide(self):
        with pytest.raises(ValueError):
            canonicalize("0x100000000")
        with pytest.raises(ValueError):
            canonicalize(2 ** 32)

    def test_negative(self):
        with pytest.raises(ValueError):
            canonicalize(-1)

    def test_garbage(self):
        with pytest.raises(ValueError):
            canonicalize("not an instruction")
        with pytest.raises(ValueError):
            canonicalize("")

    def test_field_accessors(self):
        """Fields of sb $2, 0 ($8)."""
        word = InstructionWord(0xA1020000)
        assert word.opcode == 0b101000
        assert word.rs == 8
        assert word.rt == 2
        assert word.immediate == 0
        assert str(word) == "0xa1020000"


class TestDecodeNoOp:
    """Test the all-zero word."""

    def test_zero_is_noop(self, decoder):
        result = decoder.decode("0x00000000")
        assert result.control is NOOP
        assert result.is_noop
        assert result.mnemonic == "nop"
        assert result.as_fields() == {"control": NOOP}

    def test_zero_integer(self, decoder):
        assert decoder.decode(0).is_noop


class TestDecodeRFormat:
    """Test R-format decode."""

    def test_add(self, decoder):
        """add $t1, $t2, $t3 ($9, $10, $11)."""
        word = (10 << 21) | (11 << 16) | (9 << 11) | 0x20
        result = decoder.decode(word)

        assert result.mnemonic == "add"
        assert result.control.reg_write == 1
        assert result.control.reg_dest == 1
        assert result.control.alu_op == 2
        assert result.control.format == R_FORMAT
        assert result.function == 0x20
        assert result.function == InstructionWord(word).function
        assert result.s_e_offset is NA
        assert result.write_reg_15_11 == 9
        assert result.write_reg_20_16 == 11
        assert result.read_reg_1 == 10
        assert result.read_reg_2 == 11

    def test_full_control(self, decoder):
        result = decoder.decode("0x00a63820")
        assert result.control == ControlSignals(
            reg_write=1, reg_dest=1, mem_to_reg=0, mem_read=0, mem_write=0,
            alu_src=0, branch=0, alu_op=2, format=R_FORMAT,
        )

    def test_sub(self, decoder):
        result = decoder.decode("0x00624022")
        assert result.mnemonic == "sub"
        assert result.function == 0x22
        assert result.write_reg_15_11 == 8

    def test_other_function_codes(self, decoder):
        """Any function code decodes with R-format control."""
        result = decoder.decode("0x02697824")  # and $15 $19 $9
        assert result.mnemonic == "and"
        assert result.function == 0x24
        assert result.control == R_FORMAT_CONTROL
        assert result.write_reg_15_11 == 15

    def test_unknown_function_code(self, decoder):
        result = decoder.decode("0x0000003F")
        assert result.mnemonic == "r-format"
        assert result.function == 0x3F
        assert result.control == R_FORMAT_CONTROL


class TestDecodeIFormat:
    """Test I-format decode."""

    def test_store_byte(self, decoder):
        result = decoder.decode("0xa1020000")
        assert result.mnemonic == "sb"
        assert result.control == STORE_CONTROL
        assert result.control.reg_dest is NA
        assert result.control.mem_to_reg is NA
        assert result.control.mem_write == 1
        assert result.control.alu_op == 0
        assert result.s_e_offset == 0
        assert result.function is NA
        assert result.write_reg_20_16 == 2
        assert result.read_reg_1 == 8

    def test_load_byte_negative_offset(self, decoder):
        result = decoder.decode("0x810AFFFC")
        assert result.mnemonic == "lb"
        assert result.control == LOAD_CONTROL
        assert result.s_e_offset == -4
        assert result.write_reg_20_16 == 10

    def test_load_word(self, decoder):
        result = decoder.decode("0x8d0f0004")
        assert result.mnemonic == "lw"
        assert result.control.mem_read == 1
        assert result.control.mem_to_reg == 1
        assert result.control.reg_dest == 0
        assert result.s_e_offset == 4

    def test_store_word(self, decoder):
        result = decoder.decode("0xad09fffc")
        assert result.mnemonic == "sw"
        assert result.control == STORE_CONTROL
        assert result.s_e_offset == -4

    def test_branches(self, decoder):
        for word, name in (("0x12A70004", "beq"), ("0x158FFFF6", "bne")):
            result = decoder.decode(word)
            assert result.mnemonic == name
            assert result.control == BRANCH_CONTROL
            assert result.control.branch == 1
            assert result.control.alu_src == 0

    def test_unknown_opcode(self, decoder):
        with pytest.raises(DecodeError) as exc_info:
            decoder.decode("0xFC000000")
        assert exc_info.value.opcode == 0x3F
        assert exc_info.value.function is None
        assert "0x3f" in str(exc_info.value)

    def test_incr_pc_carried(self, decoder):
        result = decoder.decode("0xa1020000", HexValue(0x70004))
        fields = result.as_fields()
        assert fields["incrPC"] == HexValue(0x70004)
        assert fields["control"] == STORE_CONTROL
        assert "readReg1Value" not in fields

    def test_field_order(self, decoder):
        fields = decoder.decode("0x8d0f0004", HexValue(0x70008)).as_fields((0x108, 0x10F))
        assert list(fields) == [
            "control", "writeReg_15_11", "writeReg_20_16", "readReg1Value",
            "readReg2Value", "sEOffset", "function", "incrPC",
        ]
        assert fields["readReg1Value"] == 0x108


class TestParseProgram:
    """Test program text parsing."""

    def test_lines_and_comments(self):
        source = """
            # header
            0x00a63820   # add
            0x8d0f0004

            0xad09fffc; 0x00625022
        """
        assert parse_program(source) == ["0x00a63820", "0x8d0f0004", "0xad09fffc", "0x00625022"]

    def test_empty(self):
        assert parse_program("\n  # nothing\n") == []


class TestParseAddress:
    """Test starting address parsing."""

    def test_forms(self):
        assert parse_address("0x70000") == 0x70000
        assert parse_address("7A060") == 0x7A060
        assert parse_address(0x400) == 0x400

    def test_invalid(self):
        with pytest.raises(ValueError):
            parse_address("xyz")
