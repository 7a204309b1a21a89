"""Text rendering of cycle records.

Layout of one cycle:

    -----------------
    | Clock Cycle 2 |
    -----------------
    Regs: 0, 101, 102, ...

    IF/ID Register Write
    --------------------
    instruction = 0x8d0f0004  incrPC = 0x70008
    ...
"""

from typing import Iterable, List

from .control import is_noop
from .fields import FieldMap, format_value


def format_fields(fields: FieldMap) -> List[str]:
    """Render one side of a pipeline register.

    A control record goes on its own line; every other field is listed on a
    single line in insertion order.
    """
    lines = []
    others = []
    for name, value in fields.items():
        if name == "control" and not is_noop(value):
            signals = ", ".join(f"{k} = {format_value(v)}" for k, v in value.items())
            lines.append(f"Control: {signals}")
        else:
            others.append(f"{name} = {format_value(value)}")
    lines.append("  ".join(others))
    return lines


def format_cycle(record) -> str:
    """Render a CycleRecord."""
    title = f"| Clock Cycle {record.cycle} |"
    rule = "-" * len(title)
    lines = [rule, title, rule]
    lines.append("Regs: " + ", ".join(format(value, "x") for value in record.registers))
    lines.append("")

    for name, (write, read) in record.pipeline.items():
        for side, fields in (("Write", write), ("Read", read)):
            lines.append("")
            lines.append(f"{name} Register {side}")
            lines.append("-" * 20)
            lines.extend(format_fields(fields))

    if record.cache_events:
        lines.append("")
        for operation, address, result in record.cache_events:
            lines.append(f"Cache {operation} 0x{address:x}: {result}")

    return "\n".join(lines)


def format_trace(records: Iterable) -> str:
    """Render a sequence of CycleRecords separated by blank lines."""
    return "\n\n".join(format_cycle(record) for record in records)
