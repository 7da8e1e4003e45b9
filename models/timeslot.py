"""Datenmodell für einen Zeitslot im Wochenraster."""

from dataclasses import dataclass

DAY_NAMES = ["Mo", "Di", "Mi", "Do", "Fr", "Sa", "So"]


@dataclass(frozen=True)
class TimeSlot:
    """Ein einzelner Slot im Wochenraster: Kombination aus Tag und Stunde.

    Immutable (frozen=True) damit es als Dict-Key / Set-Element nutzbar ist.
    Beide Werte sind 0-basiert; der lineare Index ist
    ``day * slots_per_day + period``.
    """

    # Wochentag (0=Montag, 1=Dienstag, ...)
    day: int
    # Stunde innerhalb des Tages (0 = erste Stunde)
    period: int

    @classmethod
    def from_index(cls, index: int, slots_per_day: int) -> "TimeSlot":
        return cls(day=index // slots_per_day, period=index % slots_per_day)

    def index(self, slots_per_day: int) -> int:
        return self.day * slots_per_day + self.period

    @property
    def day_name(self) -> str:
        """Abgekürzter Tagesname."""
        return DAY_NAMES[self.day] if self.day < len(DAY_NAMES) else str(self.day)

    def __repr__(self) -> str:
        return f"TimeSlot({self.day_name}, Std.{self.period + 1})"

    def __str__(self) -> str:
        return f"{self.day_name} {self.period + 1}."
