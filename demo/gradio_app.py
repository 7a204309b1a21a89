"""MIPS Pipeline Interactive Demo.

A Gradio web interface for stepping instruction words through the
five-stage pipeline and inspecting every pipeline register.

Usage:
    cd /path/to/mips-pipeline
    python demo/gradio_app.py

Features:
    - Enter or load instruction words (hex or binary)
    - Choose the starting address and an optional cache
    - See the write and read side of every pipeline register per cycle
    - Disassembly of the program and final register file
"""

import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import gradio as gr
from mips_pipeline import Disassembler, PipelineEngine, PipelineError
from mips_pipeline.decoder import parse_program
from mips_pipeline.trace import format_trace


# Slot counts offered for the cache; the cache needs a power of two.
CACHE_SLOT_CHOICES = [0, 4, 8, 16, 32, 64]

# =============================================================================
# Example Programs
# =============================================================================

EXAMPLE_PROGRAMS = {
    "Store, loads and arithmetic": """0xa1020000  # sb $2, 0 ($8)
0x810AFFFC  # lb $10, -4 ($8)
0x00831820  # add $3 $4 $3
0x01263820  # add $7 $9 $6
0x01224820  # add $9 $9 $2
0x81180000  # lb $24, 0 ($8)
0x81510010  # lb $17, 16 ($10)
0x00624022  # sub $8 $3 $2""",

    "Add, load, store, sub": """0x00a63820  # add $7 $5 $6
0x8d0f0004  # lw $15, 4 ($8)
0xad09fffc  # sw $9, -4 ($8)
0x00625022  # sub $10 $3 $2""",

    "Branch (no redirect)": """0x10220003  # beq $2, $1, +3
0x00221820  # add $3 $1 $2""",

    "Custom": ""
}


# =============================================================================
# Execution Functions
# =============================================================================

def run_program(program: str, start: str, drain: bool, cache_slots: int) -> tuple:
    """Run a program and return results.

    Args:
        program: Instruction words, one or more per line
        start: Starting address in hex
        drain: Append no-op cycles so every instruction writes back
        cache_slots: Cache slots (0 disables the cache)

    Returns:
        Tuple of (summary_text, trace_text, registers_text)
    """
    words = parse_program(program)
    if not words:
        return "Error: No program provided", "", ""

    try:
        engine = PipelineEngine(
            starting_address=start or PipelineEngine.DEFAULT_STARTING_ADDRESS,
            cache_slots=int(cache_slots) or None
        )
        listing = Disassembler(engine.starting_address).disassemble(words)
    except (PipelineError, ValueError) as e:
        return f"Error: {e}", "", ""

    try:
        engine.run(words, drain=drain)
    except (PipelineError, ValueError) as e:
        error_msg = str(e)
    else:
        error_msg = None

    # Format summary
    summary = engine.get_summary()
    summary_lines = [
        "EXECUTION SUMMARY",
        "=" * 40,
        f"Cycles: {summary['cycles']}",
        f"Halted: {'Yes' if summary['halted'] else 'No'}",
    ]
    if error_msg:
        summary_lines.append(f"\nError: {error_msg}")
    if "cache" in summary:
        summary_lines.append(f"Cache hits: {summary['cache']['hits']}")
        summary_lines.append(f"Cache misses: {summary['cache']['misses']}")
    summary_lines.append("\nPROGRAM")
    summary_lines.append("-" * 40)
    summary_lines.extend(listing)

    trace_text = format_trace(engine.trace)

    # Format registers
    reg_lines = [
        "FINAL REGISTERS",
        "=" * 30,
    ]
    seed = PipelineEngine().dump_registers()
    for index, value in enumerate(engine.dump_registers()):
        marker = " *" if value != seed[index] else ""
        reg_lines.append(f"  ${index:<3} {value:>8x}{marker}")

    return "\n".join(summary_lines), trace_text, "\n".join(reg_lines)


def load_example(example_name: str) -> str:
    """Load an example program."""
    return EXAMPLE_PROGRAMS.get(example_name, "")


# =============================================================================
# Gradio Interface
# =============================================================================

def create_demo():
    """Create and return the Gradio demo interface."""

    with gr.Blocks(title="MIPS Pipeline Demo", theme=gr.themes.Soft()) as demo:
        gr.Markdown("""
        # MIPS Pipeline: Five-Stage Datapath Simulator

        Every cycle a new instruction enters Fetch while earlier ones move
        through Decode, Execute, Memory and Writeback. Each pipeline register
        is shown twice: the **Write** side filled this cycle and the **Read**
        side the next stage consumed (left by the previous clock edge).

        **Pipeline**: `IF -> IF/ID -> ID -> ID/EX -> EX -> EX/MEM -> MEM -> MEM/WB -> WB`
        """)

        with gr.Row():
            with gr.Column(scale=2):
                gr.Markdown("### Instruction Words")

                example_dropdown = gr.Dropdown(
                    choices=list(EXAMPLE_PROGRAMS.keys()),
                    value="Store, loads and arithmetic",
                    label="Load Example"
                )

                program_input = gr.Textbox(
                    value=EXAMPLE_PROGRAMS["Store, loads and arithmetic"],
                    label="Program",
                    lines=12,
                    placeholder="0x00a63820  # one word per line"
                )

                gr.Markdown("### Settings")

                with gr.Row():
                    start_input = gr.Textbox(
                        value=PipelineEngine.DEFAULT_STARTING_ADDRESS,
                        label="Starting Address"
                    )
                    drain_checkbox = gr.Checkbox(
                        value=True,
                        label="Drain pipeline",
                        info="Append four no-ops"
                    )
                cache_dropdown = gr.Dropdown(
                    choices=CACHE_SLOT_CHOICES,
                    value=0,
                    label="Cache Slots",
                    info="0 = no cache"
                )

                run_button = gr.Button("Run Program", variant="primary")

            with gr.Column(scale=3):
                with gr.Row():
                    summary_output = gr.Textbox(
                        label="Summary",
                        lines=12,
                        interactive=False
                    )
                    registers_output = gr.Textbox(
                        label="Final Registers",
                        lines=12,
                        interactive=False
                    )

                trace_output = gr.Textbox(
                    label="Cycle Trace",
                    lines=24,
                    interactive=False
                )

        with gr.Accordion("Instruction Reference", open=False):
            gr.Markdown("""
            | Instruction | Format | Control (regWrite regDest memToReg memRead memWrite aluSrc branch aluOp) |
            |-------------|--------|------------------------------------------------------------------------|
            | `add`, `sub` | R (opcode 0, funct 0x20 / 0x22) | 1 1 0 0 0 0 0 2 |
            | other funct | R (opcode 0), result is rs unchanged | 1 1 0 0 0 0 0 2 |
            | `lw`, `lb` | I (0x23 / 0x20) | 1 0 1 1 0 1 0 0 |
            | `sw`, `sb` | I (0x2b / 0x28) | 0 X X 0 1 1 0 0 |
            | `beq`, `bne` | I (0x04 / 0x05) | 0 X X 0 0 0 1 0 |

            **Registers**: $0-$31, seeded `0x100 + i` ($0 = 0, but writable)
            **Memory**: 2 KiB, seeded `address % 256`
            **Not modelled**: hazards, forwarding, branch redirection
            """)

        # Event handlers
        example_dropdown.change(
            fn=load_example,
            inputs=[example_dropdown],
            outputs=[program_input]
        )

        run_button.click(
            fn=run_program,
            inputs=[program_input, start_input, drain_checkbox, cache_dropdown],
            outputs=[summary_output, trace_output, registers_output]
        )

    return demo


# =============================================================================
# Main
# =============================================================================

if __name__ == "__main__":
    demo = create_demo()
    demo.launch(
        share=False,
        server_name="0.0.0.0",
        server_port=7861,
        show_error=True
    )
