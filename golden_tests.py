from __future__ import annotations

import argparse
import difflib
import json
import shutil
import sys
from pathlib import Path
from typing import Dict, List, Optional

from core.runner import run_machine
from isa import RAM_WORDS, assemble, to_hex
from machine_cli import format_outputs, parse_dump, parse_schedule
from translator.cli import discover_sources, translate

REPO_ROOT = Path(__file__).resolve().parent


def read_text(path: Path) -> str:
    return path.read_text(encoding="utf-8")


def write_text(path: Path, data: str):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(data, encoding="utf-8")


def compile_vm(src_path: Path) -> Dict[str, object]:
    sources, _, multi = discover_sources(src_path)
    code = translate(sources, bootstrap=multi)
    asm = "\n".join(code) + "\n"
    return {"asm": asm, "hex": to_hex(assemble(code))}


def run_compiled(test_dir: Path, schedule_path: Optional[Path], ticks: int, dump: List[str], trace_file: Optional[str]) -> str:
    schedule = parse_schedule(str(schedule_path)) if schedule_path else []
    cpu = run_machine(
        str(test_dir / "program.asm"), schedule, RAM_WORDS, ticks, trace=trace_file is not None, trace_file=trace_file
    )
    return format_outputs(cpu.dp.ram, parse_dump(dump))


def copy_source(src_path: Path, test_dir: Path) -> str:
    if src_path.is_dir():
        dst = test_dir / "src"
        if dst.exists():
            shutil.rmtree(dst)
        shutil.copytree(src_path, dst)
        return "src"
    write_text(test_dir / "program.vm", read_text(src_path))
    return "program.vm"


def generate_golden(
    name: str,
    src_path: Path,
    out_dir: Path,
    schedule_path: Optional[Path],
    ticks: int,
    dump: List[str],
    trace: bool = False,
):
    test_dir = out_dir / name
    test_dir.mkdir(parents=True, exist_ok=True)

    # Copy inputs
    source = copy_source(src_path, test_dir)
    if schedule_path and schedule_path.exists():
        write_text(test_dir / "schedule.txt", read_text(schedule_path))

    # Compile
    comp = compile_vm(src_path)
    write_text(test_dir / "program.asm", comp["asm"])  # type: ignore[arg-type]
    write_text(test_dir / "program.hex", comp["hex"])  # type: ignore[arg-type]

    # Run
    trace_file = str(test_dir / "trace.txt") if trace else None
    write_text(test_dir / "out.txt", run_compiled(test_dir, schedule_path, ticks, dump, trace_file))

    meta = {
        "name": name,
        "source": source,
        "ticks": ticks,
        "ram_words": RAM_WORDS,
        "dump": dump,
    }
    write_text(test_dir / "meta.json", json.dumps(meta, indent=2, ensure_ascii=False) + "\n")


def discover_tests(project_root: Path) -> List[Dict[str, object]]:
    ex = project_root / "examples"
    return [
        {"name": "simple_add", "src": ex / "simple_add.vm", "sched": ex / "simple_add.input", "ticks": 1000, "dump": ["256"]},
        {"name": "stack_compare", "src": ex / "stack_compare.vm", "sched": ex / "stack_compare.input", "ticks": 2000, "dump": ["256-260"]},
        {"name": "basic_loop", "src": ex / "basic_loop.vm", "sched": ex / "basic_loop.input", "ticks": 2000, "dump": ["256", "300"]},
        {
            "name": "basic_test",
            "src": ex / "basic_test.vm",
            "sched": ex / "basic_test.input",
            "ticks": 2000,
            "dump": ["256", "300", "401", "3006", "3015", "11"],
        },
        {
            "name": "pointer_test",
            "src": ex / "pointer_test.vm",
            "sched": ex / "pointer_test.input",
            "ticks": 2000,
            "dump": ["3", "4", "256", "3032", "3046"],
        },
        {"name": "statics", "src": ex / "StaticsTest", "sched": None, "ticks": 10000, "dump": ["261-262"]},
        {"name": "fibonacci", "src": ex / "FibonacciElement", "sched": None, "ticks": 50000, "dump": ["261"]},
    ]


def main():
    ap = argparse.ArgumentParser(description="Generate golden test artifacts")
    ap.add_argument("--out-dir", default="golden", help="output directory for golden tests")
    ap.add_argument("--only", action="append", help="run only specified test(s) by name", default=None)
    ap.add_argument("--ticks", type=int, help="override ticks for all tests")
    ap.add_argument("--trace", action="store_true", help="also write trace.txt when generating")
    ap.add_argument("--verify", action="store_true", help="run tests against existing golden artifacts and compare")
    ap.add_argument("--check-asm", action="store_true", help="also compare assembly with golden")
    ap.add_argument("--fail-fast", action="store_true", help="stop at first mismatch with non-zero exit code")
    args = ap.parse_args()

    out_dir = (REPO_ROOT / args.out_dir).resolve()
    tests = discover_tests(REPO_ROOT)
    if args.only:
        names = set(args.only)
        tests = [t for t in tests if t["name"] in names]

    def verify_one(name: str, src: Path, ticks: int, dump: List[str]) -> bool:
        gdir = out_dir / name
        ok = True
        comp = compile_vm(src)
        fresh_asm: str = comp["asm"]  # type: ignore[assignment]
        gsched = gdir / "schedule.txt"
        with_sched = gsched if gsched.exists() else None

        tmp_dir = gdir / ".fresh"
        write_text(tmp_dir / "program.asm", fresh_asm)
        try:
            fresh_out = run_compiled(tmp_dir, with_sched, ticks, dump, None)
        finally:
            shutil.rmtree(tmp_dir, ignore_errors=True)

        expected_out = read_text(gdir / "out.txt") if (gdir / "out.txt").exists() else ""
        if fresh_out != expected_out:
            print(f"[mismatch][{name}] out.txt differs")
            for line in difflib.unified_diff(expected_out.splitlines(), fresh_out.splitlines(), fromfile="golden/out.txt", tofile="fresh/out.txt", lineterm=""):
                print(line)
            ok = False
        if args.check_asm:
            expected_asm = read_text(gdir / "program.asm") if (gdir / "program.asm").exists() else ""
            if fresh_asm != expected_asm:
                print(f"[mismatch][{name}] program.asm differs")
                for line in difflib.unified_diff(expected_asm.splitlines(), fresh_asm.splitlines(), fromfile="golden/program.asm", tofile="fresh/program.asm", lineterm=""):
                    print(line)
                ok = False
        return ok

    any_failed = False
    for t in tests:
        name = str(t["name"])
        src = Path(t["src"])  # type: ignore[arg-type]
        sched = Path(t["sched"]) if t["sched"] else None  # type: ignore[arg-type]
        ticks = int(args.ticks) if args.ticks is not None else int(t["ticks"])  # type: ignore[call-overload]
        dump: List[str] = list(t["dump"])  # type: ignore[call-overload]
        if args.verify:
            print(f"[verify] {name}")
            if not verify_one(name, src, ticks, dump):
                any_failed = True
                if args.fail_fast:
                    sys.exit(1)
        else:
            print(f"[golden] Generating {name} -> {out_dir / name}")
            generate_golden(name, src, out_dir, sched, ticks, dump, trace=args.trace)

    if args.verify:
        if any_failed:
            sys.exit(1)
        print("[verify] all tests OK")


if __name__ == "__main__":
    main()
