from __future__ import annotations

import re
from dataclasses import dataclass
from enum import IntEnum
from typing import Iterable


class Reg(IntEnum):
    # Stack pointer and segment bases
    SP = 0
    LCL = 1
    ARG = 2
    THIS = 3
    THAT = 4

    # Scratch registers of the calling convention
    R13 = 13  # frame base / pop target address
    R14 = 14  # return address
    R15 = 15


TEMP_BASE = 5  # temp 0..7 -> RAM[5..12]
TEMP_SIZE = 8
STATIC_BASE = 16  # first variable / static slot
STACK_BASE = 256
SCREEN = 16384
KBD = 24576
RAM_WORDS = 32768

MAX_LITERAL = 0x7FFF  # @value is 15 bits wide
WORD_MASK = 0xFFFF

PREDEFINED: dict[str, int] = {f"R{i}": i for i in range(16)}
PREDEFINED.update({r.name: int(r) for r in (Reg.SP, Reg.LCL, Reg.ARG, Reg.THIS, Reg.THAT)})
PREDEFINED.update(SCREEN=SCREEN, KBD=KBD)

# comp -> a c1 c2 c3 c4 c5 c6 (c1..c6 = zx nx zy ny f no)
COMP: dict[str, int] = {
    "0": 0b0101010,
    "1": 0b0111111,
    "-1": 0b0111010,
    "D": 0b0001100,
    "A": 0b0110000,
    "!D": 0b0001101,
    "!A": 0b0110001,
    "-D": 0b0001111,
    "-A": 0b0110011,
    "D+1": 0b0011111,
    "A+1": 0b0110111,
    "D-1": 0b0001110,
    "A-1": 0b0110010,
    "D+A": 0b0000010,
    "D-A": 0b0010011,
    "A-D": 0b0000111,
    "D&A": 0b0000000,
    "D|A": 0b0010101,
}
COMP.update({k.replace("A", "M"): v | 0b1000000 for k, v in list(COMP.items()) if "A" in k})
# коммутативные синонимы (A+D == D+A и т.п.)
for _x in ("A", "M"):
    for _op in "+&|":
        COMP[f"{_x}{_op}D"] = COMP[f"D{_op}{_x}"]

JUMP: dict[str, int] = {
    "": 0b000,
    "JGT": 0b001,
    "JEQ": 0b010,
    "JGE": 0b011,
    "JLT": 0b100,
    "JNE": 0b101,
    "JLE": 0b110,
    "JMP": 0b111,
}

DEST_BITS = {"A": 0b100, "D": 0b010, "M": 0b001}

# canonical spellings used when disassembling
_COMP_NAMES: dict[int, str] = {}
for _name, _bits in COMP.items():
    _COMP_NAMES.setdefault(_bits, _name)
_JUMP_NAMES = {v: k for k, v in JUMP.items()}

SYMBOL_RE = re.compile(r"^[A-Za-z_.$:][\w.$:]*$")


@dataclass
class AInstr:
    value: int | str  # literal or unresolved symbol

    def __str__(self) -> str:
        return f"@{self.value}"


@dataclass
class CInstr:
    comp: str
    dest: str = ""
    jump: str = ""

    def __str__(self) -> str:
        text = self.comp
        if self.dest:
            text = f"{self.dest}={text}"
        if self.jump:
            text = f"{text};{self.jump}"
        return text


@dataclass
class Label:
    name: str

    def __str__(self) -> str:
        return f"({self.name})"


Instr = AInstr | CInstr | Label


def dest_bits(dest: str) -> int:
    bits = 0
    for ch in dest:
        if ch not in DEST_BITS or bits & DEST_BITS[ch]:
            raise SyntaxError(f"bad dest {dest!r}")
        bits |= DEST_BITS[ch]
    return bits


def parse_line(text: str, line: int = 0) -> Instr | None:
    """Parse one line of Hack assembly; returns None for blank/comment lines."""
    s = text.split("//", 1)[0].strip()
    if not s:
        return None
    if s.startswith("@"):
        val = s[1:]
        if val.isdigit():
            if int(val) > MAX_LITERAL:
                raise SyntaxError(f"literal {val} out of range at line {line}")
            return AInstr(int(val))
        if not SYMBOL_RE.match(val):
            raise SyntaxError(f"bad symbol {val!r} at line {line}")
        return AInstr(val)
    if s.startswith("("):
        if not s.endswith(")") or not SYMBOL_RE.match(s[1:-1]):
            raise SyntaxError(f"bad label {s!r} at line {line}")
        return Label(s[1:-1])

    s = s.replace(" ", "")
    dest, comp, jump = "", s, ""
    if "=" in comp:
        dest, comp = comp.split("=", 1)
    if ";" in comp:
        comp, jump = comp.split(";", 1)
    if comp not in COMP:
        raise SyntaxError(f"bad comp {comp!r} at line {line}")
    if jump not in JUMP:
        raise SyntaxError(f"bad jump {jump!r} at line {line}")
    try:
        dest_bits(dest)
    except SyntaxError as e:
        raise SyntaxError(f"{e.msg} at line {line}") from e
    return CInstr(comp, dest, jump)


def parse_asm(lines: Iterable[str]) -> list[Instr]:
    out: list[Instr] = []
    for no, text in enumerate(lines, start=1):
        ins = parse_line(text, no)
        if ins is not None:
            out.append(ins)
    return out


def encode_c(ins: CInstr) -> int:
    return (0b111 << 13) | (COMP[ins.comp] << 6) | (dest_bits(ins.dest) << 3) | JUMP[ins.jump]


def assemble(lines: Iterable[str]) -> list[int]:
    """Two-pass Hack assembler.

    Pass 1 binds labels to ROM addresses, pass 2 resolves the remaining
    symbols as variables allocated from STATIC_BASE in order of first use.
    """
    program = parse_asm(lines)
    symbols = dict(PREDEFINED)

    pc = 0
    for ins in program:
        if isinstance(ins, Label):
            if ins.name in symbols:
                raise SyntaxError(f"duplicate label {ins.name!r}")
            symbols[ins.name] = pc
        else:
            pc += 1

    next_var = STATIC_BASE
    words: list[int] = []
    for ins in program:
        if isinstance(ins, Label):
            continue
        if isinstance(ins, AInstr):
            value = ins.value
            if isinstance(value, str):
                if value not in symbols:
                    symbols[value] = next_var
                    next_var += 1
                value = symbols[value]
            words.append(value & MAX_LITERAL)
        else:
            words.append(encode_c(ins))
    return words


def disassemble(word: int) -> str:
    if not word & 0x8000:
        return f"@{word}"
    comp = _COMP_NAMES.get((word >> 6) & 0x7F, "?")
    ins = CInstr(comp, "".join(ch for ch in "ADM" if (word >> 3) & DEST_BITS[ch]), _JUMP_NAMES[word & 0b111])
    return str(ins)


def to_hack(words: list[int]) -> str:
    return "".join(f"{w & WORD_MASK:016b}\n" for w in words)


def from_hack(text: str) -> list[int]:
    words: list[int] = []
    for no, line in enumerate(text.splitlines(), start=1):
        s = line.strip()
        if not s:
            continue
        if len(s) != 16 or set(s) - {"0", "1"}:
            raise SyntaxError(f"bad machine word {s!r} at line {no}")
        words.append(int(s, 2))
    return words


def to_hex(words: list[int]) -> str:
    lines: list[str] = []
    for addr, word in enumerate(words):
        lines.append(f"{addr} - {word:04X} - {disassemble(word)}")
    return "\n".join(lines)


def to_signed(value: int) -> int:
    value &= WORD_MASK
    return value - 0x10000 if value & 0x8000 else value
