from __future__ import annotations

import argparse

from core.io import RamEvent
from core.runner import run_machine
from isa import PREDEFINED, RAM_WORDS, Reg, to_signed


def parse_addr(tok: str) -> int:
    if tok in PREDEFINED:
        return PREDEFINED[tok]
    return int(tok, 0)


def parse_schedule(path: str) -> list[RamEvent]:
    events = []
    with open(path, encoding="utf-8") as f:
        for line in f:
            s = line.split("#", 1)[0].strip()
            if not s:
                continue
            parts = s.split()
            if len(parts) != 3:
                raise ValueError(f"bad schedule line: {line.strip()!r}")
            tick = int(parts[0])
            addr = parse_addr(parts[1])
            # отрицательные значения хранятся в дополнительном коде
            value = int(parts[2], 0) & 0xFFFF
            events.append(RamEvent(tick=tick, addr=addr, value=value))
    return events


def parse_dump(specs: list[str] | None) -> list[int]:
    addrs: list[int] = []
    for spec in specs or []:
        if "-" in spec:
            lo, hi = spec.split("-", 1)
            addrs.extend(range(parse_addr(lo), parse_addr(hi) + 1))
        else:
            addrs.append(parse_addr(spec))
    return addrs


def format_outputs(ram: list[int], dump: list[int]) -> str:
    lines = [f"SP| {ram[Reg.SP]}"]
    for addr in dump:
        value = ram[addr] if addr < len(ram) else 0
        lines.append(f"RAM[{addr}]| {to_signed(value)}")
    return "\n".join(lines) + "\n"


def main():
    ap = argparse.ArgumentParser(description="Run a Hack program (.asm or .hack)")
    ap.add_argument("program", help="assembly or machine code path")
    ap.add_argument("--schedule", help="RAM schedule file (tick addr value)")
    ap.add_argument("--ram-words", type=int, default=RAM_WORDS)
    ap.add_argument("--ticks", type=int, default=100000)
    ap.add_argument("--dump", action="append", help="RAM address or LO-HI range to print")
    ap.add_argument("--trace", action="store_true", help="dump per-tick trace")
    ap.add_argument("--trace-file", help="write trace to file (default: stdout)")
    args = ap.parse_args()

    sched = parse_schedule(args.schedule) if args.schedule else []
    cpu = run_machine(args.program, sched, args.ram_words, args.ticks, trace=args.trace, trace_file=args.trace_file)
    print(format_outputs(cpu.dp.ram, parse_dump(args.dump)), end="")
    if not cpu.halted:
        print(f"(tick limit {args.ticks} reached)")


if __name__ == "__main__":
    main()
