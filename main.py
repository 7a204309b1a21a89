#!/usr/bin/env python3
"""MIPS Pipeline Command Line Interface.

Run instruction words through the five-stage pipeline simulator.

Usage:
    python main.py --program programs/sample.hex
    python main.py --inline "0x00a63820; 0x8d0f0004" --drain --trace
"""

import argparse
import json
import logging
import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent / "src"))

from mips_pipeline import Disassembler, PipelineEngine, PipelineError
from mips_pipeline.decoder import parse_program


def main():
    parser = argparse.ArgumentParser(
        description="MIPS Pipeline: five-stage pipeline datapath simulator",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    # Run a program file (one hex word per line, # comments)
    python main.py --program programs/sample.hex

    # Run inline words, drain the pipeline and print every cycle
    python main.py --inline "0xa1020000; 0x810AFFFC; 0x00831820" --drain --trace

    # Put a 16-slot cache in front of main memory
    python main.py --program programs/sample.hex --cache-slots 16

    # Only disassemble
    python main.py --inline "0x022DA822 0x8EF30018" --start 7A060 --disassemble
        """
    )

    parser.add_argument(
        "--program", "-p",
        type=str,
        help="Path to program file (instruction words in hex or binary)"
    )
    parser.add_argument(
        "--inline", "-i",
        type=str,
        help="Inline instruction words (separate with ; or whitespace)"
    )
    parser.add_argument(
        "--start", "-s",
        type=str,
        default=PipelineEngine.DEFAULT_STARTING_ADDRESS,
        help=f"Starting address in hex. Default: {PipelineEngine.DEFAULT_STARTING_ADDRESS}"
    )
    parser.add_argument(
        "--drain",
        action="store_true",
        help="Append no-op cycles until the last instruction has written back"
    )
    parser.add_argument(
        "--cache-slots",
        type=int,
        default=None,
        help="Route memory accesses through a direct-mapped cache with this many slots"
    )
    parser.add_argument(
        "--trace", "-t",
        action="store_true",
        help="Print every cycle"
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print the cycle records as JSON"
    )
    parser.add_argument(
        "--disassemble", "-d",
        action="store_true",
        help="Print the disassembled program instead of running it"
    )
    parser.add_argument(
        "--quiet", "-q",
        action="store_true",
        help="Minimal output (changed registers only)"
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Log pipeline activity to stderr"
    )

    args = parser.parse_args()

    # Validate arguments
    if not args.program and not args.inline:
        parser.error("Either --program or --inline is required")

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s"
    )

    # Load program
    if args.program:
        program_path = Path(args.program)
        if not program_path.exists():
            print(f"Error: Program file not found: {args.program}")
            sys.exit(1)
        source = program_path.read_text()
        if not args.quiet:
            print(f"Loading program: {args.program}")
    else:
        source = args.inline.replace(";", "\n")
        if not args.quiet:
            print("Running inline program")

    words = parse_program(source)

    if args.disassemble:
        try:
            for line in Disassembler(args.start).disassemble(words):
                print(line)
        except (PipelineError, ValueError) as e:
            print(f"Disassembly error: {e}")
            return 1
        return 0

    engine = PipelineEngine(starting_address=args.start, cache_slots=args.cache_slots)

    if not args.quiet:
        print("-" * 60)
        print("Executing...")
        print("-" * 60)

    exit_code = 0
    try:
        engine.run(words, drain=args.drain)
    except (PipelineError, ValueError) as e:
        print(f"Execution error: {e}")
        exit_code = 1

    # Output
    if args.json:
        print(json.dumps([record.to_dict() for record in engine.trace], indent=2))
    elif args.trace:
        engine.print_trace()
    if args.quiet:
        # Only registers that moved away from their seed value
        seed = PipelineEngine(register_count=engine.register_count).dump_registers()
        for index, value in enumerate(engine.dump_registers()):
            if value != seed[index]:
                print(f"${index}={value:x}")
    elif not args.json:
        print()
        summary = engine.get_summary()
        print(f"Cycles: {summary['cycles']}")
        print(f"Halted: {summary['halted']}")
        print("Registers: " + ", ".join(format(v, "x") for v in summary["registers"]))
        if engine.cache is not None:
            engine.cache.flush()
            print(f"Cache: {summary['cache']['hits']} hit(s), {summary['cache']['misses']} miss(es)")
            print(engine.cache.format_table())

    return exit_code


if __name__ == "__main__":
    sys.exit(main())
