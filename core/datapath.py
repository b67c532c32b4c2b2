from __future__ import annotations

from isa import WORD_MASK

from .io import MemoryController


class DataPath:
    """Тракт данных Hack: регистры A и D, ОЗУ данных и ALU."""

    def __init__(self, ram_words: int, mem: MemoryController):
        self.ram = [0] * max(1, ram_words)
        self.mem = mem

        self.a: int = 0
        self.d: int = 0
        self.alu_out: int = 0
        self.zr: bool = True
        self.ng: bool = False

    def _ensure(self, addr: int):
        if addr >= len(self.ram):
            self.ram.extend([0] * (addr - len(self.ram) + 1))

    # ОЗУ, адресуемое регистром A
    def read(self, addr: int) -> int:
        self._ensure(addr)
        return self.ram[addr]

    def write(self, addr: int, value: int):
        self._ensure(addr)
        self.ram[addr] = value & WORD_MASK

    def apply_events(self, tick: int):
        for addr, value in self.mem.writes_for(tick):
            self.write(addr, value)

    # ALU
    def alu_compute(self, comp: int) -> int:
        """Run the ALU for a 7-bit comp field (a zx nx zy ny f no)."""
        x = self.d
        y = self.read(self.a) if comp & 0b1000000 else self.a
        if comp & 0b100000:  # zx
            x = 0
        if comp & 0b010000:  # nx
            x = ~x & WORD_MASK
        if comp & 0b001000:  # zy
            y = 0
        if comp & 0b000100:  # ny
            y = ~y & WORD_MASK
        if comp & 0b000010:  # f
            out = (x + y) & WORD_MASK
        else:
            out = x & y
        if comp & 0b000001:  # no
            out = ~out & WORD_MASK
        self.alu_out = out
        self.zr = out == 0
        self.ng = (out & 0x8000) != 0
        return out
