from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable

from isa import MAX_LITERAL, STACK_BASE, TEMP_BASE, TEMP_SIZE, Reg

from .parser import Command, CommandType

ENTRY_FUNCTION = "Sys.init"


class Segment(Enum):
    CONSTANT = "constant"
    LOCAL = "local"
    ARGUMENT = "argument"
    THIS = "this"
    THAT = "that"
    TEMP = "temp"
    POINTER = "pointer"
    STATIC = "static"


# сегменты с базой в регистре
BASE_REGS = {
    Segment.LOCAL: Reg.LCL,
    Segment.ARGUMENT: Reg.ARG,
    Segment.THIS: Reg.THIS,
    Segment.THAT: Reg.THAT,
}

POINTER_REGS = (Reg.THIS, Reg.THAT)

BINARY_OPS = {"add": "M=D+M", "sub": "M=M-D", "and": "M=D&M", "or": "M=D|M"}
UNARY_OPS = {"neg": "M=-M", "not": "M=!M"}
COMPARE_OPS = {"eq": "JEQ", "gt": "JGT", "lt": "JLT"}

# return address + LCL, ARG, THIS, THAT
FRAME_SIZE = 5


@dataclass
class TranslatorState:
    """Translator-wide state of one run.

    `file_name` names static slots (`Foo.3`), `function_name` scopes labels
    (`Foo.bar$LOOP`), `label_counter` keeps generated labels unique across
    every file of the run and is never reset.
    """

    file_name: str = "Static"
    function_name: str = ""
    label_counter: int = 0


def segment_of(name: str) -> Segment:
    try:
        return Segment(name)
    except ValueError:
        raise ValueError(f"bad segment {name!r}") from None


def check_range(index: int, lo: int, hi: int, what: str):
    if not lo <= index <= hi:
        raise IndexError(f"{what} index out of range: {index}")


class Codegen:
    def __init__(self, state: TranslatorState | None = None, comments: bool = False):
        self.state = state if state is not None else TranslatorState()
        self.comments = comments
        self.code: list[str] = []

    def emit(self, *lines: str):
        self.code.extend(lines)

    # --- state ---------------------------------------------------------

    def set_file_name(self, name: str):
        self.state.file_name = name

    def next_label_id(self) -> int:
        n = self.state.label_counter
        self.state.label_counter += 1
        return n

    def scoped(self, label: str) -> str:
        if not self.state.function_name:
            return label
        return f"{self.state.function_name}${label}"

    # --- helpers -------------------------------------------------------

    def push_d(self):
        # *SP = D; SP++
        self.emit(f"@{Reg.SP.name}", "A=M", "M=D", f"@{Reg.SP.name}", "M=M+1")

    def pop_d(self):
        # SP--; D = *SP
        self.emit(f"@{Reg.SP.name}", "AM=M-1", "D=M")

    def push_reg(self, reg: Reg):
        self.emit(f"@{reg.name}", "D=M")
        self.push_d()

    def addr_to_r13(self, addr: str):
        """R13 <- address held in A after `@addr`."""
        self.emit(f"@{addr}", "D=A", f"@{Reg.R13.name}", "M=D")

    def base_addr_to_r13(self, base: Reg, index: int):
        # R13 = *base + index
        self.emit(f"@{index}", "D=A", f"@{base.name}", "D=D+M", f"@{Reg.R13.name}", "M=D")

    def pop_to_r13_target(self):
        self.pop_d()
        self.emit(f"@{Reg.R13.name}", "A=M", "M=D")

    # --- bootstrap -----------------------------------------------------

    def write_init(self):
        if self.comments:
            self.emit("// bootstrap")
        self.emit(f"@{STACK_BASE}", "D=A", f"@{Reg.SP.name}", "M=D")
        self.write_call(ENTRY_FUNCTION, 0)

    # --- arithmetic / logical ------------------------------------------

    def write_arithmetic(self, op: str):
        if op in BINARY_OPS:
            self.pop_d()
            self.emit("A=A-1", BINARY_OPS[op])
        elif op in UNARY_OPS:
            self.emit(f"@{Reg.SP.name}", "A=M-1", UNARY_OPS[op])
        elif op in COMPARE_OPS:
            self.write_compare(COMPARE_OPS[op])
        else:
            raise ValueError(f"unknown arithmetic command {op!r}")

    def write_compare(self, jump: str):
        n = self.next_label_id()
        true_label, end_label = f"TRUE_{n}", f"END_{n}"
        # D = x - y, x stays in place as the result slot
        self.pop_d()
        self.emit("A=A-1", "D=M-D")
        self.emit(f"@{true_label}", f"D;{jump}")
        self.emit(f"@{Reg.SP.name}", "A=M-1", "M=0", f"@{end_label}", "0;JMP")
        self.emit(f"({true_label})", f"@{Reg.SP.name}", "A=M-1", "M=-1")
        self.emit(f"({end_label})")

    # --- memory access -------------------------------------------------

    def write_push_pop(self, kind: CommandType, segment: str, index: int):
        seg = segment_of(segment)
        if kind == CommandType.C_PUSH:
            self.write_push(seg, index)
        elif kind == CommandType.C_POP:
            self.write_pop(seg, index)
        else:
            raise ValueError(f"not a push/pop command: {kind.value}")

    def write_push(self, seg: Segment, index: int):
        if seg == Segment.CONSTANT:
            check_range(index, 0, MAX_LITERAL, "constant")
            self.emit(f"@{index}", "D=A")
        elif seg in BASE_REGS:
            self.emit(f"@{index}", "D=A", f"@{BASE_REGS[seg].name}", "A=D+M", "D=M")
        else:
            self.emit(f"@{self.direct_addr(seg, index)}", "D=M")
        self.push_d()

    def write_pop(self, seg: Segment, index: int):
        if seg == Segment.CONSTANT:
            raise ValueError("pop constant is invalid")
        if seg in BASE_REGS:
            self.base_addr_to_r13(BASE_REGS[seg], index)
        else:
            self.addr_to_r13(self.direct_addr(seg, index))
        self.pop_to_r13_target()

    def direct_addr(self, seg: Segment, index: int) -> str:
        """Symbol or address of a temp/pointer/static cell."""
        if seg == Segment.TEMP:
            check_range(index, 0, TEMP_SIZE - 1, "temp")
            return str(TEMP_BASE + index)
        if seg == Segment.POINTER:
            check_range(index, 0, 1, "pointer")
            return POINTER_REGS[index].name
        if seg == Segment.STATIC:
            return f"{self.state.file_name}.{index}"
        raise AssertionError(f"segment {seg.value} is not directly addressed")

    # --- branching -----------------------------------------------------

    def write_label(self, label: str):
        self.emit(f"({self.scoped(label)})")

    def write_goto(self, label: str):
        self.emit(f"@{self.scoped(label)}", "0;JMP")

    def write_if(self, label: str):
        self.pop_d()
        self.emit(f"@{self.scoped(label)}", "D;JNE")

    # --- functions -----------------------------------------------------

    def write_function(self, name: str, n_locals: int):
        self.state.function_name = name
        self.emit(f"({name})")
        for _ in range(n_locals):
            self.emit(f"@{Reg.SP.name}", "A=M", "M=0", f"@{Reg.SP.name}", "M=M+1")

    def write_call(self, name: str, n_args: int):
        ret = f"RET_{self.next_label_id()}"

        self.emit(f"@{ret}", "D=A")
        self.push_d()
        for reg in (Reg.LCL, Reg.ARG, Reg.THIS, Reg.THAT):
            self.push_reg(reg)

        # ARG = SP - 5 - nArgs
        self.emit(f"@{Reg.SP.name}", "D=M", f"@{FRAME_SIZE + n_args}", "D=D-A", f"@{Reg.ARG.name}", "M=D")
        # LCL = SP
        self.emit(f"@{Reg.SP.name}", "D=M", f"@{Reg.LCL.name}", "M=D")

        self.emit(f"@{name}", "0;JMP")
        self.emit(f"({ret})")

    def write_return(self):
        frame, ret = Reg.R13.name, Reg.R14.name
        # FRAME = LCL
        self.emit(f"@{Reg.LCL.name}", "D=M", f"@{frame}", "M=D")
        # RET = *(FRAME - 5)
        self.emit(f"@{FRAME_SIZE}", "A=D-A", "D=M", f"@{ret}", "M=D")
        # *ARG = pop()
        self.pop_d()
        self.emit(f"@{Reg.ARG.name}", "A=M", "M=D")
        # SP = ARG + 1
        self.emit(f"@{Reg.ARG.name}", "D=M+1", f"@{Reg.SP.name}", "M=D")
        # THAT, THIS, ARG, LCL = *(FRAME - 1..4)
        for offset, reg in enumerate((Reg.THAT, Reg.THIS, Reg.ARG, Reg.LCL), start=1):
            self.emit(f"@{frame}", "D=M", f"@{offset}", "A=D-A", "D=M", f"@{reg.name}", "M=D")
        # goto RET
        self.emit(f"@{ret}", "A=M", "0;JMP")

    # --- dispatch ------------------------------------------------------

    def write_command(self, cmd: Command):
        if self.comments:
            self.emit(f"// {cmd.text}")
        kind = cmd.kind
        if kind == CommandType.C_ARITHMETIC:
            self.write_arithmetic(cmd.arg1())
        elif kind in (CommandType.C_PUSH, CommandType.C_POP):
            self.write_push_pop(kind, cmd.arg1(), cmd.arg2())
        elif kind == CommandType.C_LABEL:
            self.write_label(cmd.arg1())
        elif kind == CommandType.C_GOTO:
            self.write_goto(cmd.arg1())
        elif kind == CommandType.C_IF:
            self.write_if(cmd.arg1())
        elif kind == CommandType.C_FUNCTION:
            self.write_function(cmd.arg1(), cmd.arg2())
        elif kind == CommandType.C_CALL:
            self.write_call(cmd.arg1(), cmd.arg2())
        elif kind == CommandType.C_RETURN:
            self.write_return()
        else:
            raise AssertionError(f"unhandled command kind: {kind}")

    def gen(self, commands: Iterable[Command]) -> list[str]:
        for cmd in commands:
            self.write_command(cmd)
        return self.code
