from __future__ import annotations

import argparse
import sys
from pathlib import Path

from isa import assemble, to_hack, to_hex

from .codegen import Codegen
from .parser import parse_source

SUFFIX = ".vm"


def discover_sources(source: Path) -> tuple[list[Path], Path, bool]:
    """Return (vm files, default output path, multi-unit flag)."""
    if source.is_dir():
        files = sorted(p for p in source.iterdir() if p.suffix == SUFFIX and p.is_file())
        if not files:
            raise FileNotFoundError(f"no {SUFFIX} files in directory {source}")
        return files, source / f"{source.name}.asm", True
    if source.suffix != SUFFIX:
        raise ValueError(f"expected {SUFFIX} file or directory, got {source}")
    return [source], source.with_suffix(".asm"), False


def translate(sources: list[Path], bootstrap: bool, comments: bool = False) -> list[str]:
    cg = Codegen(comments=comments)
    if bootstrap:
        cg.write_init()
    for src in sources:
        # имя файла должно смениться до первой команды нового модуля (static)
        cg.set_file_name(src.stem)
        for cmd in parse_source(src.read_text(encoding="utf-8")):
            try:
                cg.write_command(cmd)
            except (ValueError, RuntimeError, IndexError) as e:
                raise SyntaxError(f"{src.name}:{cmd.line}: {e}") from e
    return cg.code


def main():
    ap = argparse.ArgumentParser(description="VM -> Hack assembly translator")
    ap.add_argument("source", help="input .vm file or directory of .vm files")
    ap.add_argument("-o", "--output", help="output .asm file (default: next to source)")
    ap.add_argument(
        "--bootstrap",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="emit SP=256; call Sys.init (default: only for directories)",
    )
    ap.add_argument("--comments", action="store_true", help="annotate output with VM commands")
    ap.add_argument("--hack", dest="hackfile", help="also assemble and write .hack machine code")
    ap.add_argument("--hex", dest="hexdump", help="write hex listing to file")
    args = ap.parse_args()

    try:
        sources, output, multi = discover_sources(Path(args.source))
        if args.output:
            output = Path(args.output)
        bootstrap = multi if args.bootstrap is None else args.bootstrap
        code = translate(sources, bootstrap, comments=args.comments)
        words = assemble(code) if args.hackfile or args.hexdump else None
    except (SyntaxError, OSError, ValueError) as e:
        print(f"error: {e}", file=sys.stderr)
        sys.exit(1)

    output.write_text("\n".join(code) + "\n", encoding="utf-8")
    if args.hackfile:
        Path(args.hackfile).write_text(to_hack(words), encoding="utf-8")
    if args.hexdump:
        Path(args.hexdump).write_text(to_hex(words), encoding="utf-8")
    print(f"Translated {len(sources)} file(s) -> {output}")


if __name__ == "__main__":
    main()
