"""Vergleich zweier Raster (Diff / Changelog).

Gibt die geänderten Slots strukturiert zurück, ausgebbar als Rich-Tabelle
oder JSON. Genutzt nach einer manuellen Bearbeitung.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Optional

from models.timeslot import TimeSlot

if TYPE_CHECKING:
    from models.grid import Timetable, TimetableCell


@dataclass
class SlotChange:
    """Ein veränderter Slot einer Klasse."""

    class_id: str
    slot: int
    before: Optional[str]   # load_id vorher (None = leer)
    after: Optional[str]    # load_id nachher


@dataclass
class TimetableDiff:
    """Alle Unterschiede zwischen zwei Rastern."""

    slots_per_day: int
    changes: list[SlotChange] = field(default_factory=list)
    classes_added: list[str] = field(default_factory=list)
    classes_removed: list[str] = field(default_factory=list)

    def is_empty(self) -> bool:
        """Gibt True zurück wenn kein Unterschied gefunden wurde."""
        return not self.changes and not self.classes_added and not self.classes_removed

    def to_dict(self) -> dict:
        return {
            "changes": [
                {
                    "class_id": c.class_id,
                    "slot": c.slot,
                    "before": c.before,
                    "after": c.after,
                }
                for c in self.changes
            ],
            "classes_added": self.classes_added,
            "classes_removed": self.classes_removed,
        }

    def to_json(self, indent: int = 2) -> str:
        """Gibt den Diff als JSON-String zurück."""
        return json.dumps(self.to_dict(), indent=indent, ensure_ascii=False)

    def print_rich(self) -> None:
        from rich.console import Console
        from rich.table import Table
        from rich import box

        console = Console()
        if self.is_empty():
            console.print("[dim]Keine Änderungen.[/dim]")
            return

        table = Table(title="Geänderte Slots", box=box.SIMPLE_HEAVY)
        table.add_column("Klasse", style="cyan")
        table.add_column("Slot")
        table.add_column("Vorher", style="red")
        table.add_column("Nachher", style="green")
        for c in self.changes:
            ts = TimeSlot.from_index(c.slot, self.slots_per_day)
            table.add_row(c.class_id, str(ts), c.before or "—", c.after or "—")
        console.print(table)
        for class_id in self.classes_added:
            console.print(f"[green]+ Klasse {class_id}[/green]")
        for class_id in self.classes_removed:
            console.print(f"[red]- Klasse {class_id}[/red]")


def _label(cell: Optional["TimetableCell"]) -> Optional[str]:
    if cell is None:
        return None
    return cell.lesson_id or cell.load_id


def diff_timetables(a: "Timetable", b: "Timetable") -> TimetableDiff:
    """Vergleicht zwei Raster gleicher Größe Slot für Slot.

    Args:
        a: Stand vorher.
        b: Stand nachher.

    Returns:
        TimetableDiff; Klassen, die nur in einem Raster vorkommen, werden
        separat aufgeführt und nicht slotweise verglichen.
    """
    if a.total_slots != b.total_slots or a.slots_per_day != b.slots_per_day:
        raise ValueError(
            f"Raster unterschiedlich groß: {a.days}×{a.slots_per_day} vs. "
            f"{b.days}×{b.slots_per_day}"
        )

    diff = TimetableDiff(slots_per_day=a.slots_per_day)
    diff.classes_added = sorted(set(b.cells) - set(a.cells))
    diff.classes_removed = sorted(set(a.cells) - set(b.cells))

    for class_id in a.cells:
        if class_id not in b.cells:
            continue
        row_a, row_b = a.cells[class_id], b.cells[class_id]
        for idx in range(a.total_slots):
            if row_a[idx] != row_b[idx]:
                diff.changes.append(
                    SlotChange(
                        class_id=class_id,
                        slot=idx,
                        before=_label(row_a[idx]),
                        after=_label(row_b[idx]),
                    )
                )
    return diff
