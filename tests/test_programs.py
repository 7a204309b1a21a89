"""Integration tests for example programs."""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import pytest
from mips_pipeline import PipelineEngine
from mips_pipeline.cache import CacheResult
from mips_pipeline.decoder import parse_program
from mips_pipeline.fields import HexValue
from mips_pipeline.state import RegisterFile


PROGRAMS_DIR = Path(__file__).parent.parent / "programs"

SAMPLE_PROGRAM = [
    "0xa1020000",  # sb $2, 0 ($8)
    "0x810AFFFC",  # lb $10, -4 ($8)
    "0x00831820",  # add $3 $4 $3
    "0x01263820",  # add $7 $9 $6
    "0x01224820",  # add $9 $9 $2
    "0x81180000",  # lb $24, 0 ($8)
    "0x81510010",  # lb $17, 16 ($10)
    "0x00624022",  # sub $8 $3 $2
    "0x00000000",
    "0x00000000",
    "0x00000000",
    "0x00000000",
]

SAMPLE_RESULT = {
    3: 0x207,
    7: 0x20F,
    8: 0x105,
    9: 0x20B,
    10: 0x04,
    17: 0x14,
    24: 0x02,
}


def expected_registers(changes):
    regs = RegisterFile().snapshot()
    for index, value in changes.items():
        regs[index] = value
    return regs


class TestSampleProgram:
    """Store, loads, adds and a sub followed by four no-ops."""

    @pytest.fixture
    def engine(self):
        return PipelineEngine("0x70000")

    def test_final_registers(self, engine):
        engine.run(SAMPLE_PROGRAM)
        assert engine.get_cycle_count() == 12
        assert engine.dump_registers() == expected_registers(SAMPLE_RESULT)

    def test_store_reaches_memory(self, engine):
        engine.run(SAMPLE_PROGRAM)
        memory = engine.dump_memory()
        assert memory[0x108] == 0x02
        assert memory[0x104] == 0x04

    def test_load_sees_earlier_store(self, engine):
        """lb $24, 0 ($8) reads the byte written by sb four cycles before."""
        records = engine.run(SAMPLE_PROGRAM)
        assert records[8].write_side("MEM/WB")["lWDataValue"] == 0x02

    def test_load_uses_written_back_base(self, engine):
        """lb $17, 16 ($10) sees $10 written back in cycle 6."""
        records = engine.run(SAMPLE_PROGRAM)
        assert records[7].write_side("ID/EX")["readReg1Value"] == 0x04
        assert records[8].write_side("EX/MEM")["aluResult"] == 0x14

    def test_last_fetch_address(self, engine):
        records = engine.run(SAMPLE_PROGRAM)
        assert records[-1].write_side("IF/ID")["incrPC"] == HexValue(0x70000 + 4 * 12)

    def test_program_file(self, engine):
        words = parse_program((PROGRAMS_DIR / "sample.hex").read_text())
        assert words == SAMPLE_PROGRAM
        engine.run(words)
        assert engine.dump_registers() == expected_registers(SAMPLE_RESULT)

    def test_run_in_two_calls(self, engine):
        """Splitting the program across run() calls gives the same result."""
        first = engine.run(SAMPLE_PROGRAM[:5])
        second = engine.run(SAMPLE_PROGRAM[5:])
        assert [r.cycle for r in first + second] == list(range(1, 13))
        assert engine.dump_registers() == expected_registers(SAMPLE_RESULT)


class TestAddLoadStore:
    """add, lw, sw, sub."""

    def test_result(self):
        engine = PipelineEngine()
        words = parse_program((PROGRAMS_DIR / "add_load_store.hex").read_text())
        engine.run(words, drain=True)

        assert engine.get_cycle_count() == 8
        assert engine.dump_registers() == expected_registers({
            7: 0x105 + 0x106,
            15: 0x0C,
            10: 0x103 - 0x102,
        })
        # sw $9, -4 ($8) stores the low byte of 0x109
        assert engine.dump_memory()[0x104] == 0x09


class TestNoHazardHandling:
    """The pipeline neither stalls nor forwards."""

    def test_dependent_add_reads_stale_value(self):
        """add $5 $3 $0 right after add $3 $4 $3 sees the old $3."""
        engine = PipelineEngine()
        engine.run(["0x00831820", "0x00602820"], drain=True)
        assert engine.get_register(3) == 0x207
        assert engine.get_register(5) == 0x103


class TestBranches:
    """Branches decode but never redirect fetch."""

    def test_fetch_is_sequential(self):
        engine = PipelineEngine()
        records = engine.run(["0x10220003", "0x00221820"], drain=True)
        pcs = [r.write_side("IF/ID")["incrPC"] for r in records]
        assert pcs == [HexValue(0x70000 + 4 * i) for i in range(1, 7)]

    def test_only_following_instruction_writes(self):
        engine = PipelineEngine()
        records = engine.run(["0x10220003", "0x00221820"], drain=True)
        ex_mem = records[2].write_side("EX/MEM")
        assert ex_mem["control"].branch == 1
        assert engine.dump_registers() == expected_registers({3: 0x101 + 0x102})


class TestSampleProgramWithCache:
    """Same program with a 16-slot cache in front of memory."""

    @pytest.fixture
    def engine(self):
        return PipelineEngine("0x70000", cache_slots=16)

    def test_same_registers(self, engine):
        engine.run(SAMPLE_PROGRAM)
        assert engine.dump_registers() == expected_registers(SAMPLE_RESULT)

    def test_store_stays_in_cache_until_flush(self, engine):
        engine.run(SAMPLE_PROGRAM)
        assert engine.dump_memory()[0x108] == 0x08
        engine.cache.flush()
        assert engine.dump_memory()[0x108] == 0x02

    def test_cache_events(self, engine):
        records = engine.run(SAMPLE_PROGRAM)
        assert records[3].cache_events == [("write", 0x108, CacheResult.MISS)]
        assert records[4].cache_events == [("read", 0x104, CacheResult.HIT)]
        assert records[8].cache_events == [("read", 0x108, CacheResult.HIT)]
        assert records[9].cache_events == [("read", 0x14, CacheResult.MISS)]
        assert engine.get_summary()["cache"] == {"hits": 2, "misses": 2}
