"""DirectMappedCache: write-back cache in front of MainMemory.

Address layout (defaults: 16 slots of 16 bytes):

    | tag | slot index | block offset |
           log2(slots)  log2(block_size) bits

A read miss loads the whole block into its slot; a write miss loads the
block first and then updates it. Written slots are marked dirty and are
copied back to main memory only when evicted or on flush().
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Tuple

from .state import BYTE_MASK, MainMemory

logger = logging.getLogger(__name__)


class CacheResult(str, Enum):
    HIT = "hit"
    MISS = "miss"

    def __str__(self) -> str:
        return self.value


@dataclass
class Slot:
    """One cache line.

    Attributes:
        num: Slot index
        is_valid: Whether the slot holds a block
        is_dirty: Whether the block differs from main memory
        tag: Tag of the cached block
        saved_blocks: Cached bytes
    """
    num: int
    is_valid: bool = False
    is_dirty: bool = False
    tag: int = 0
    saved_blocks: List[int] = field(default_factory=list)


def _log2(value: int, name: str) -> int:
    if value < 1 or value & (value - 1):
        raise ValueError(f"{name} must be a power of two, got {value}")
    return value.bit_length() - 1


class DirectMappedCache:
    """Direct-mapped, write-back, write-allocate cache.

    Attributes:
        memory: Backing main memory
        slot_count: Number of slots
        block_size: Bytes per slot
        slots: List of Slot
        hits: Number of hits so far
        misses: Number of misses so far
    """

    DEFAULT_SLOT_COUNT = 16
    DEFAULT_BLOCK_SIZE = 16

    def __init__(
        self,
        memory: MainMemory,
        slot_count: int = DEFAULT_SLOT_COUNT,
        block_size: int = DEFAULT_BLOCK_SIZE
    ):
        self._offset_bits = _log2(block_size, "block_size")
        self._index_bits = _log2(slot_count, "slot_count")
        if memory.size % block_size:
            raise ValueError(
                f"Memory size 0x{memory.size:x} is not a multiple of block size {block_size}"
            )
        self.memory = memory
        self.slot_count = slot_count
        self.block_size = block_size
        self.slots: List[Slot] = []
        self.hits = 0
        self.misses = 0
        self.reset()

    def reset(self) -> None:
        """Invalidate every slot and clear the counters (dirty data is dropped)."""
        self.slots = [
            Slot(num=i, saved_blocks=[0] * self.block_size) for i in range(self.slot_count)
        ]
        self.hits = 0
        self.misses = 0

    def split_address(self, address: int) -> Tuple[int, int, int]:
        """Split an address into (tag, slot index, block offset)."""
        offset = address & (self.block_size - 1)
        index = (address >> self._offset_bits) & (self.slot_count - 1)
        tag = address >> (self._offset_bits + self._index_bits)
        return tag, index, offset

    def read(self, address: int) -> Tuple[int, CacheResult]:
        """Read one byte through the cache.

        Returns:
            (value, CacheResult.HIT or CacheResult.MISS)

        Raises:
            MemoryAccessError: If address is outside main memory
        """
        self.memory.check_address(address)
        tag, index, offset = self.split_address(address)
        slot = self.slots[index]
        result = self._lookup(slot, tag)
        if result is CacheResult.MISS:
            self._fill(slot, tag)
        value = slot.saved_blocks[offset]
        logger.debug("cache read 0x%x -> %x (%s)", address, value, result)
        return value, result

    def write(self, address: int, value: int) -> CacheResult:
        """Write one byte through the cache, marking the slot dirty.

        Raises:
            MemoryAccessError: If address is outside main memory
        """
        self.memory.check_address(address)
        tag, index, offset = self.split_address(address)
        slot = self.slots[index]
        result = self._lookup(slot, tag)
        if result is CacheResult.MISS:
            self._fill(slot, tag)
        slot.saved_blocks[offset] = value & BYTE_MASK
        slot.is_dirty = True
        logger.debug("cache write 0x%x <- %x (%s)", address, value & BYTE_MASK, result)
        return result

    def flush(self) -> int:
        """Write every dirty slot back to main memory.

        Returns:
            Number of slots written back
        """
        written = 0
        for slot in self.slots:
            if slot.is_valid and slot.is_dirty:
                self._write_back(slot)
                written += 1
        logger.info("cache flush wrote back %d slot(s)", written)
        return written

    def format_table(self) -> str:
        """Render the cache contents as a table."""
        lines = ["Slot | Valid | Tag | Data"]
        for slot in self.slots:
            data = " ".join(format(value, "x") for value in slot.saved_blocks)
            lines.append(f"  {slot.num:x}  |   {int(slot.is_valid)}   |  {slot.tag:x}  | {data}")
        return "\n".join(lines)

    def _lookup(self, slot: Slot, tag: int) -> CacheResult:
        if slot.is_valid and slot.tag == tag:
            self.hits += 1
            return CacheResult.HIT
        self.misses += 1
        return CacheResult.MISS

    def _block_start(self, tag: int, index: int) -> int:
        return (tag << (self._offset_bits + self._index_bits)) | (index << self._offset_bits)

    def _fill(self, slot: Slot, tag: int) -> None:
        if slot.is_valid and slot.is_dirty:
            self._write_back(slot)
        slot.saved_blocks = self.memory.read_block(self._block_start(tag, slot.num), self.block_size)
        slot.tag = tag
        slot.is_valid = True
        slot.is_dirty = False

    def _write_back(self, slot: Slot) -> None:
        start = self._block_start(slot.tag, slot.num)
        self.memory.write_block(start, slot.saved_blocks)
        slot.is_dirty = False
        logger.debug("cache wrote back slot %x to 0x%x", slot.num, start)
