"""MIPS Pipeline: five-stage pipeline datapath simulator for teaching.

This package models how a MIPS CPU decodes instruction words into control
signals and carries per-cycle state between the Fetch, Decode, Execute,
Memory and Writeback stages through double-buffered pipeline registers.

Architecture:
    word -> IF -> [IF/ID] -> ID -> [ID/EX] -> EX -> [EX/MEM] -> MEM -> [MEM/WB] -> WB
                                |                         |                      |
                          InstructionDecoder             ALU          MainMemory   RegisterFile
                                                                    (DirectMappedCache)

At the end of every cycle all four pipeline registers commit together: each
read side becomes a value copy of its write side.

Modules:
    fields: Tagged field values (int, HexValue, NA)
    control: Control records and the NOOP bubble
    decoder: Instruction word parsing and decode
    alu: Frozen registry of ALU primitives
    state: RegisterFile and MainMemory
    pipeline_register: Double-buffered pipeline register
    engine: PipelineEngine orchestrator and CycleRecord
    cache: Direct-mapped write-back cache
    disassembler: Instruction word to assembly text
    trace: Text rendering of cycle records
"""

__version__ = "0.1.0"

from .fields import NA, HexValue, NotApplicable
from .control import NOOP, ControlSignals, MemoryControl, WritebackControl
from .decoder import InstructionDecoder, DecodeResult, InstructionWord, canonicalize, sign_extend
from .errors import (
    PipelineError,
    DecodeError,
    InconsistentControlError,
    MemoryAccessError,
    PipelineHaltedError,
)
from .state import RegisterFile, MainMemory
from .pipeline_register import PipelineRegister
from .cache import DirectMappedCache, CacheResult
from .engine import PipelineEngine, CycleRecord
from .disassembler import Disassembler

__all__ = [
    "NA",
    "HexValue",
    "NotApplicable",
    "NOOP",
    "ControlSignals",
    "MemoryControl",
    "WritebackControl",
    "InstructionDecoder",
    "DecodeResult",
    "InstructionWord",
    "canonicalize",
    "sign_extend",
    "PipelineError",
    "DecodeError",
    "InconsistentControlError",
    "MemoryAccessError",
    "PipelineHaltedError",
    "RegisterFile",
    "MainMemory",
    "PipelineRegister",
    "DirectMappedCache",
    "CacheResult",
    "PipelineEngine",
    "CycleRecord",
    "Disassembler",
]
