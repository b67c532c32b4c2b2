from __future__ import annotations

from pathlib import Path

from isa import Reg, assemble, disassemble, from_hack, to_signed

from .cpu import CPU
from .io import MemoryController, RamEvent


def load_program(path: str) -> list[int]:
    """Read Hack assembly (.asm) or machine code (.hack) into ROM words."""
    text = Path(path).read_text(encoding="utf-8")
    if path.endswith(".asm"):
        return assemble(text.splitlines())
    return from_hack(text)


def trace_line(cpu: CPU) -> str:
    dp = cpu.dp
    ins = disassemble(cpu.rom[cpu.pc]) if cpu.pc < len(cpu.rom) else "-"
    return (
        f"t={cpu.tick} pc={cpu.pc} ir={ins} A={dp.a} D={to_signed(dp.d)} "
        f"SP={dp.read(Reg.SP)} LCL={dp.read(Reg.LCL)} ARG={dp.read(Reg.ARG)}\n"
    )


def run_machine(
    program_path: str,
    ram_schedule: list[RamEvent],
    ram_words: int,
    tick_limit: int,
    trace: bool = False,
    trace_file: str | None = None,
) -> CPU:
    rom = load_program(program_path)
    mem = MemoryController(schedule=ram_schedule)
    cpu = CPU(rom, ram_words=ram_words, mem=mem, tick_limit=tick_limit)
    trace_out = None
    if trace:
        trace_out = open(trace_file, "w", encoding="utf-8") if trace_file else None
    try:
        while cpu.tick < cpu.tick_limit and not cpu.halted:
            if trace:
                line = trace_line(cpu)
                if trace_out:
                    trace_out.write(line)
                else:
                    print(line, end="")
            cpu.step_tick()
    finally:
        if trace_out:
            trace_out.close()
    return cpu
