from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable

from .lexer import SourceLine, clean_lines


class CommandType(Enum):
    C_ARITHMETIC = "arithmetic"
    C_PUSH = "push"
    C_POP = "pop"
    C_LABEL = "label"
    C_GOTO = "goto"
    C_IF = "if-goto"
    C_FUNCTION = "function"
    C_CALL = "call"
    C_RETURN = "return"


KEYWORDS = {
    "push": CommandType.C_PUSH,
    "pop": CommandType.C_POP,
    "label": CommandType.C_LABEL,
    "goto": CommandType.C_GOTO,
    "if-goto": CommandType.C_IF,
    "function": CommandType.C_FUNCTION,
    "call": CommandType.C_CALL,
    "return": CommandType.C_RETURN,
}

# команды со вторым (целым) аргументом
WITH_ARG2 = {CommandType.C_PUSH, CommandType.C_POP, CommandType.C_FUNCTION, CommandType.C_CALL}


def classify(text: str) -> CommandType:
    return KEYWORDS.get(text.split()[0], CommandType.C_ARITHMETIC)


@dataclass(frozen=True)
class Command:
    text: str
    kind: CommandType
    line: int = 0

    @classmethod
    def from_text(cls, text: str, line: int = 0) -> Command:
        text = text.strip()
        return cls(text, classify(text), line)

    def arg1(self) -> str:
        """Operator name for arithmetic commands, otherwise the second token."""
        if self.kind == CommandType.C_ARITHMETIC:
            return self.text
        if self.kind == CommandType.C_RETURN:
            raise RuntimeError("arg1 is invalid for 'return'")
        parts = self.text.split()
        if len(parts) < 2:
            raise ValueError(f"{self.kind.value}: missing argument")
        return parts[1]

    def arg2(self) -> int:
        if self.kind not in WITH_ARG2:
            raise RuntimeError(f"arg2 is invalid for '{self.kind.value}'")
        parts = self.text.split()
        if len(parts) < 3:
            raise ValueError(f"{self.kind.value}: missing integer argument")
        tok = parts[2]
        if not tok.isdigit():
            raise ValueError(f"{self.kind.value}: expected non-negative integer, got {tok!r}")
        return int(tok)


class Parser:
    """Cursor over the commands of one source unit."""

    def __init__(self, lines: Iterable[SourceLine]):
        self.commands = [Command.from_text(ln.text, ln.line) for ln in lines]
        self.i = -1

    def has_more_commands(self) -> bool:
        return self.i + 1 < len(self.commands)

    def advance(self) -> Command:
        self.i += 1
        return self.commands[self.i]

    def cur(self) -> Command:
        if self.i < 0:
            raise RuntimeError("advance() was not called")
        return self.commands[self.i]

    def command_type(self) -> CommandType:
        return self.cur().kind

    def arg1(self) -> str:
        return self.cur().arg1()

    def arg2(self) -> int:
        return self.cur().arg2()


def parse_source(src: str) -> list[Command]:
    return Parser(clean_lines(src)).commands
