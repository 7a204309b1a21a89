"""PipelineEngine: five-stage pipeline orchestrator.

Each cycle runs every stage once, in fixed order:

    IF -> IF/ID -> ID -> ID/EX -> EX -> EX/MEM -> MEM -> MEM/WB -> WB

Every stage reads the read side of its upstream pipeline register (left by
the previous clock edge) and writes the write side of its downstream one.
After WB the engine records the cycle, then commits all four registers at
once. A new instruction enters IF every cycle, so an instruction reaches WB
four cycles after it was fetched.

Not modelled: hazard detection, forwarding and branch resolution. Branches
decode normally but never change the fetch address.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple, Union

from .alu import get_alu
from .cache import CacheResult, DirectMappedCache
from .control import NOOP, is_noop
from .decoder import InstructionDecoder, InstructionLike, canonicalize, parse_address
from .errors import InconsistentControlError, PipelineError, PipelineHaltedError
from .fields import NA, FieldMap, HexValue, to_plain
from .pipeline_register import PipelineRegister
from .state import MainMemory, RegisterFile
from .trace import format_trace

logger = logging.getLogger(__name__)


NOOP_WORD = HexValue(0, width=8)


@dataclass
class CycleRecord:
    """Snapshot of one clock cycle, taken after all stages ran and before commit.

    Attributes:
        cycle: Cycle number (1-based)
        instruction: Word fetched this cycle
        registers: Register file contents
        pipeline: Register title -> (write side, read side)
        cache_events: (operation, address, hit/miss) for memory accesses made
            through the cache this cycle
    """
    cycle: int
    instruction: HexValue
    registers: List[int]
    pipeline: Dict[str, Tuple[FieldMap, FieldMap]]
    cache_events: List[Tuple[str, int, CacheResult]] = field(default_factory=list)

    def write_side(self, title: str) -> FieldMap:
        return self.pipeline[title][0]

    def read_side(self, title: str) -> FieldMap:
        return self.pipeline[title][1]

    def to_dict(self) -> dict:
        """JSON-friendly form of the record."""
        return {
            "cycle": self.cycle,
            "instruction": str(self.instruction),
            "registers": list(self.registers),
            "pipeline": {
                title: {
                    "write": {k: to_plain(v) for k, v in write.items()},
                    "read": {k: to_plain(v) for k, v in read.items()},
                }
                for title, (write, read) in self.pipeline.items()
            },
            "cache_events": [
                {"operation": op, "address": address, "result": str(result)}
                for op, address, result in self.cache_events
            ],
        }


class PipelineEngine:
    """Five-stage MIPS pipeline simulator.

    Attributes:
        starting_address: Address of the first instruction
        registers: RegisterFile owned by this engine
        memory: MainMemory owned by this engine
        cache: Optional DirectMappedCache in front of memory
        if_id, id_ex, ex_mem, mem_wb: The four pipeline registers
        trace: CycleRecord for every completed cycle
        cycle_count: Number of completed cycles
        halted: Set after a fatal error, cleared by reset()
    """

    DEFAULT_STARTING_ADDRESS = "0x70000"
    DEFAULT_MEMORY_SIZE = 0x800
    DEFAULT_REGISTER_COUNT = 32
    PIPELINE_DEPTH = 5

    def __init__(
        self,
        starting_address: Union[str, int] = DEFAULT_STARTING_ADDRESS,
        memory_size: int = DEFAULT_MEMORY_SIZE,
        register_count: int = DEFAULT_REGISTER_COUNT,
        cache_slots: Optional[int] = None,
        cache_block_size: int = DirectMappedCache.DEFAULT_BLOCK_SIZE
    ):
        """Initialize the engine with seeded registers and memory.

        Args:
            starting_address: Address of the first instruction (hex text or int)
            memory_size: Main memory size in bytes
            register_count: Number of general-purpose registers
            cache_slots: Number of cache slots; None runs without a cache
            cache_block_size: Bytes per cache slot
        """
        self.starting_address = parse_address(starting_address)
        self.memory_size = memory_size
        self.register_count = register_count
        self.cache_slots = cache_slots
        self.cache_block_size = cache_block_size

        self.decoder = InstructionDecoder()
        self.alu = get_alu()

        self.if_id: PipelineRegister[FieldMap] = PipelineRegister("IF/ID", {"instruction": NOOP_WORD})
        self.id_ex: PipelineRegister[FieldMap] = PipelineRegister("ID/EX", {"control": NOOP})
        self.ex_mem: PipelineRegister[FieldMap] = PipelineRegister("EX/MEM", {"control": NOOP})
        self.mem_wb: PipelineRegister[FieldMap] = PipelineRegister("MEM/WB", {"control": NOOP})

        self.registers: RegisterFile
        self.memory: MainMemory
        self.cache: Optional[DirectMappedCache] = None
        self.trace: List[CycleRecord] = []
        self.cycle_count = 0
        self.halted = False
        self._cache_events: List[Tuple[str, int, CacheResult]] = []
        self.reset()

    @property
    def pipeline_registers(self) -> Tuple[PipelineRegister, ...]:
        return (self.if_id, self.id_ex, self.ex_mem, self.mem_wb)

    def reset(self) -> None:
        """Restore seed registers and memory, empty pipeline and trace."""
        self.registers = RegisterFile(self.register_count)
        self.memory = MainMemory(self.memory_size)
        if self.cache_slots is not None:
            self.cache = DirectMappedCache(self.memory, self.cache_slots, self.cache_block_size)
        for register in self.pipeline_registers:
            register.reset()
        self.trace = []
        self.cycle_count = 0
        self.halted = False

    # =========================================================================
    # Cycle control
    # =========================================================================

    def step(self, instruction: InstructionLike) -> CycleRecord:
        """Run one clock cycle, fetching ``instruction``.

        Returns:
            CycleRecord captured before the commit

        Raises:
            PipelineHaltedError: If a previous cycle failed
            DecodeError: If the word in ID has an unsupported opcode
            InconsistentControlError: If WB sees an invalid memToReg
            ValueError: If ``instruction`` cannot be parsed
        """
        if self.halted:
            raise PipelineHaltedError("Pipeline is halted; call reset() first")

        word = canonicalize(instruction)
        cycle = self.cycle_count + 1
        self._cache_events = []

        try:
            self.instruction_fetch(word.to_hex())
            self.instruction_decode()
            self.execute()
            self.memory_access()
            self.write_back()
        except PipelineError as e:
            self.halted = True
            logger.error("cycle %d: %s", cycle, e)
            raise

        record = CycleRecord(
            cycle=cycle,
            instruction=word.to_hex(),
            registers=self.registers.snapshot(),
            pipeline={r.title: r.snapshot() for r in self.pipeline_registers},
            cache_events=list(self._cache_events),
        )
        self.trace.append(record)

        self.commit()
        self.cycle_count = cycle
        return record

    def run(self, instructions: Iterable[InstructionLike], drain: bool = False) -> List[CycleRecord]:
        """Run one cycle per instruction, in order.

        Args:
            instructions: Instruction words
            drain: Follow the program with no-op cycles until the last
                instruction has gone through WB

        Returns:
            Records for the cycles run by this call
        """
        words = list(instructions)
        if drain:
            words.extend([0] * (self.PIPELINE_DEPTH - 1))

        logger.info("running %d cycle(s) from 0x%x", len(words), self.starting_address)
        start = len(self.trace)
        for word in words:
            self.step(word)
        logger.info("finished at cycle %d", self.cycle_count)
        return self.trace[start:]

    def commit(self) -> None:
        """Clock edge: copy write to read for all four pipeline registers."""
        for register in self.pipeline_registers:
            register.commit()

    # =========================================================================
    # Stages
    # =========================================================================

    def instruction_fetch(self, instruction: HexValue) -> None:
        """IF: latch the instruction and the address of the next one."""
        previous = self.if_id.read().get("incrPC")
        base = previous.value if previous is not None else self.starting_address
        self.if_id.replace({"instruction": instruction, "incrPC": HexValue(base + 4)})

    def instruction_decode(self) -> None:
        """ID: decode the latched instruction and read its source registers."""
        latched = self.if_id.read()
        incr_pc = latched.get("incrPC")
        result = self.decoder.decode(latched["instruction"], incr_pc)

        if result.is_noop:
            self.id_ex.replace({"control": NOOP})
            return

        values = (self.registers.read(result.read_reg_1), self.registers.read(result.read_reg_2))
        self.id_ex.write(result.as_fields(values))
        logger.debug("ID %s: %s", result.word, result.mnemonic)

    def execute(self) -> None:
        """EX: pick the destination register and run the ALU."""
        latched = self.id_ex.read()
        control = latched["control"]

        if is_noop(control):
            self.ex_mem.replace({"control": NOOP})
            return

        if control.reg_dest == 0:
            write_reg = latched["writeReg_20_16"]
        elif control.reg_dest == 1:
            write_reg = latched["writeReg_15_11"]
        else:
            write_reg = NA

        reg1 = latched["readReg1Value"]
        reg2 = latched["readReg2Value"]
        alu_result = self.alu.compute(latched["function"], reg1, reg2, latched["sEOffset"])

        self.ex_mem.write(
            control=control.memory_control(),
            incrPC=latched.get("incrPC", NA),
            writeRegNum=write_reg,
            calcBTA=NA,
            zero=NA,
            aluResult=alu_result,
            sWValue=reg2,
        )
        logger.debug("EX aluResult=%x writeRegNum=%s", alu_result, write_reg)

    def memory_access(self) -> None:
        """MEM: load from or store to memory at the ALU result address.

        The effective address wraps modulo the memory size, so this stage
        never fails.
        """
        latched = self.ex_mem.read()
        control = latched["control"]

        if is_noop(control):
            self.mem_wb.replace({"control": NOOP})
            return

        address = latched["aluResult"]
        effective = address % self.memory.size
        if control.mem_read == 1:
            self.mem_wb.write(lWDataValue=self._load(effective))
        elif control.mem_write == 1:
            self._store(effective, latched["sWValue"])
        else:
            self.mem_wb.write(lWDataValue=NA)

        self.mem_wb.write(
            control=control.writeback_control(),
            aluResult=address,
            writeRegNum=latched["writeRegNum"],
        )

    def write_back(self) -> None:
        """WB: write the loaded value or the ALU result to the register file."""
        latched = self.mem_wb.read()
        control = latched["control"]

        if is_noop(control) or control.reg_write != 1:
            return

        if control.mem_to_reg == 1:
            value = latched["lWDataValue"]
        elif control.mem_to_reg == 0:
            value = latched["aluResult"]
        else:
            raise InconsistentControlError("memToReg", control.mem_to_reg)

        self.registers.write(latched["writeRegNum"], value)
        logger.debug("WB $%d <- %x", latched["writeRegNum"], value)

    def _load(self, address: int) -> int:
        if self.cache is None:
            return self.memory.read(address)
        value, result = self.cache.read(address)
        self._cache_events.append(("read", address, result))
        return value

    def _store(self, address: int, value: int) -> None:
        if self.cache is None:
            self.memory.write(address, value)
            return
        result = self.cache.write(address, value)
        self._cache_events.append(("write", address, result))

    # =========================================================================
    # Inspection
    # =========================================================================

    def get_register(self, index: int) -> int:
        return self.registers.read(index)

    def dump_registers(self) -> List[int]:
        return self.registers.snapshot()

    def dump_memory(self) -> List[int]:
        """Main memory contents (cached writes included only after flush)."""
        return self.memory.snapshot()

    def get_cycle_count(self) -> int:
        return self.cycle_count

    def is_halted(self) -> bool:
        return self.halted

    def print_trace(self) -> None:
        """Print every recorded cycle in the classic text layout."""
        print(format_trace(self.trace))

    def get_summary(self) -> Dict:
        """Get execution summary.

        Returns:
            Dictionary with cycle count, final registers and cache statistics
        """
        summary = {
            "cycles": self.cycle_count,
            "halted": self.halted,
            "starting_address": self.starting_address,
            "registers": self.dump_registers(),
            "trace_length": len(self.trace),
        }
        if self.cache is not None:
            summary["cache"] = {"hits": self.cache.hits, "misses": self.cache.misses}
        return summary
