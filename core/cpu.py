from __future__ import annotations

from typing import Optional

from isa import RAM_WORDS

from .datapath import DataPath
from .io import MemoryController

JUMP_ALWAYS = 0b111


class CPU:
    """Hack CPU: one instruction per tick.

    Stops once the PC leaves the ROM, on the idle loop `(L) @L 0;JMP`
    (unless more RAM writes are scheduled) or at the tick limit.
    """

    def __init__(
        self,
        rom: list[int],
        ram_words: int = RAM_WORDS,
        mem: MemoryController | None = None,
        tick_limit: int = 100000,
    ):
        self.rom = rom
        self.mem = mem if mem is not None else MemoryController()
        self.dp = DataPath(ram_words, self.mem)
        self.pc = 0
        self.ir: Optional[int] = None
        self.tick = 0
        self.tick_limit = tick_limit

        self._halted = False
        self.last_pc: int = 0

    @property
    def halted(self) -> bool:
        return self._halted

    def tick_inc(self):
        self.tick += 1

    def step_tick(self):
        if self._halted:
            return

        self.dp.apply_events(self.tick)
        if self.pc >= len(self.rom):
            self._halted = True
            return

        self.last_pc = self.pc
        self.ir = word = self.rom[self.pc]

        # A-instruction
        if not word & 0x8000:
            self.dp.a = word
            self.pc += 1
            self._finish_instruction()
            return

        # C-instruction: 111a cccc ccdd djjj
        addr = self.dp.a
        out = self.dp.alu_compute((word >> 6) & 0x7F)
        dest = (word >> 3) & 0b111
        jump = word & 0b111
        if dest & 0b001:
            self.dp.write(addr, out)
        if dest & 0b010:
            self.dp.d = out
        if dest & 0b100:
            self.dp.a = out

        if self._jump_taken(jump):
            if jump == JUMP_ALWAYS and self._is_idle_loop(addr):
                self._halted = True
            self.pc = addr
        else:
            self.pc += 1
        self._finish_instruction()

    def _finish_instruction(self):
        if self.pc >= len(self.rom):
            self._halted = True
        self.tick_inc()

    def _jump_taken(self, jump: int) -> bool:
        ng, zr = self.dp.ng, self.dp.zr
        return bool(
            (jump & 0b100 and ng)
            or (jump & 0b010 and zr)
            or (jump & 0b001 and not ng and not zr)
        )

    def _is_idle_loop(self, target: int) -> bool:
        # @L at L, followed by the jump itself
        return (
            target == self.last_pc - 1
            and self.rom[target] == target
            and not self.mem.pending(self.tick)
        )

    def run(self):
        while self.tick < self.tick_limit and not self._halted:
            self.step_tick()
