from __future__ import annotations

from dataclasses import dataclass


@dataclass
class RamEvent:
    tick: int
    addr: int
    value: int


class MemoryController:
    """Расписание записей в ОЗУ (tick 0 — начальное состояние памяти)."""

    def __init__(self, schedule: list[RamEvent] | None = None):
        self._schedule: dict[int, list[RamEvent]] = {}
        if schedule:
            for ev in schedule:
                self._schedule.setdefault(ev.tick, []).append(ev)

    def writes_for(self, tick: int) -> list[tuple[int, int]]:
        return [(ev.addr, ev.value) for ev in self._schedule.get(tick, [])]

    def pending(self, after: int) -> bool:
        return any(t > after for t in self._schedule)
