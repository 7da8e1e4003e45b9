"""Stundenplan-Engine — Haupt-CLI.

Verwendung:
  python main.py config init               Standard-Konfiguration anlegen
  python main.py config show               Konfiguration anzeigen
  python main.py generate                  Beispieldaten erzeugen
  python main.py feasibility <problem>     Kapazitäts-Check
  python main.py solve <problem>           Stundenplan berechnen
  python main.py edit <plan> <anfrage>     Manuelle Änderung prüfen + anwenden
  python main.py check <plan>              Raster auf Verletzungen prüfen

Globale Option ``-v/--verbose`` schaltet das Solver-Logging ein.
"""

import json
import logging
import sys
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich import box

console = Console()

# Standard-Pfade
DEFAULT_PROBLEM_JSON = Path("output/problem.json")
DEFAULT_SOLUTION_JSON = Path("output/solution.json")
DEFAULT_EDITED_JSON = Path("output/solution_edited.json")


def _load_config(path: Optional[Path]):
    """Lädt die Konfiguration (Default, wenn keine existiert) oder bricht ab."""
    from config.manager import ConfigManager
    try:
        return ConfigManager().load_or_default(path)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red bold]Konfiguration fehlerhaft:[/red bold]\n{e}")
        sys.exit(1)


def _load_problem(path: Path):
    from models.problem import SchedulingProblem
    try:
        return SchedulingProblem.load_json(path)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red bold]Datensatz konnte nicht geladen werden:[/red bold]\n{e}")
        sys.exit(1)


def _load_timetable(path: Path):
    """Lädt ein Raster: entweder eine gespeicherte Lösung oder ein nacktes Raster.

    Returns:
        (SolveResult oder None, Timetable)
    """
    from models.grid import Timetable
    from solver.result import SolveResult

    try:
        with open(path, "r", encoding="utf-8") as f:
            raw = json.load(f)
        if "timetable" in raw:
            result = SolveResult.model_validate(raw)
            return result, result.timetable
        return None, Timetable.model_validate(raw)
    except (OSError, ValueError) as e:
        console.print(f"[red bold]Raster konnte nicht geladen werden:[/red bold]\n{e}")
        sys.exit(1)


def _print_timetable(timetable) -> None:
    """Gibt pro Klasse eine Wochentabelle (Stunden × Tage) aus."""
    from models.timeslot import DAY_NAMES

    for class_id, row in timetable.cells.items():
        table = Table(title=f"Klasse {class_id}", box=box.SIMPLE_HEAVY)
        table.add_column("Std.", justify="right", style="dim")
        for day in range(timetable.days):
            table.add_column(DAY_NAMES[day] if day < len(DAY_NAMES) else str(day))
        for period in range(timetable.slots_per_day):
            cells = []
            for day in range(timetable.days):
                cell = row[timetable.slot_index(day, period)]
                if cell is None:
                    cells.append("")
                else:
                    text = cell.subject_id + (f" ({cell.teacher_id})" if cell.teacher_id else "")
                    cells.append(f"[bold]{text}[/bold]" if cell.fixed else text)
            table.add_row(str(period + 1), *cells)
        console.print(table)


# ─── CONFIG ───────────────────────────────────────────────────────────────────

@click.group("config")
def cmd_config():
    """Konfiguration anlegen oder anzeigen."""


@cmd_config.command("init")
@click.option("--path", type=click.Path(path_type=Path), default=None,
              help="Zielpfad (Standard: config/engine_config.yaml).")
@click.option("--force", is_flag=True, default=False, help="Bestehende Datei überschreiben.")
def config_init(path: Optional[Path], force: bool):
    """Schreibt die Standard-Konfiguration als kommentierte YAML-Datei."""
    from config.defaults import default_engine_config
    from config.manager import ConfigManager

    mgr = ConfigManager()
    target = path or mgr.DEFAULT_CONFIG
    if target.exists() and not force:
        console.print(
            f"[yellow]Konfiguration existiert bereits: {target}[/yellow]\n"
            "Mit [bold]--force[/bold] überschreiben."
        )
        sys.exit(1)
    mgr.save(default_engine_config(), target)


@cmd_config.command("show")
@click.option("--path", type=click.Path(path_type=Path), default=None,
              help="Konfigurationsdatei (Standard: config/engine_config.yaml).")
def config_show(path: Optional[Path]):
    """Zeigt die aktive Konfiguration an."""
    config = _load_config(path)

    console.print(Panel(
        f"Backend: [bold]{config.backend.value}[/bold]",
        title="Engine-Konfiguration",
        border_style="cyan",
    ))

    def _fmt(value) -> str:
        return "aus" if value is None else str(value)

    table = Table(box=box.ROUNDED)
    table.add_column("Bereich", style="bold cyan")
    table.add_column("Parameter")
    table.add_column("Wert", justify="right")
    h, x = config.heuristic, config.exact
    table.add_row("heuristic", "max_backtracks", str(h.max_backtracks))
    table.add_row("heuristic", "time_limit_ms", str(h.time_limit_ms))
    table.add_row("heuristic", "subject_max_daily_slots", _fmt(h.subject_max_daily_slots))
    table.add_row("exact", "time_limit_ms", str(x.time_limit_ms))
    table.add_row("exact", "num_workers", str(x.num_workers) if x.num_workers else "auto")
    table.add_row("exact", "subject_max_daily_slots", _fmt(x.subject_max_daily_slots))
    table.add_row("exact", "meeting_max_per_day", _fmt(x.meeting_max_per_day))
    table.add_row("exact", "teacher_meeting_max_per_day", _fmt(x.teacher_meeting_max_per_day))
    console.print(table)


# ─── GENERATE ─────────────────────────────────────────────────────────────────

@click.command("generate")
@click.option("--seed", default=42, help="Zufalls-Seed für reproduzierbare Daten.")
@click.option("--classes", "num_classes", default=2, type=click.IntRange(1, 24),
              help="Anzahl Klassen.")
@click.option("--no-meeting", is_flag=True, default=False, help="Ohne Fachkonferenz.")
@click.option("--output", "-o", type=click.Path(path_type=Path),
              default=DEFAULT_PROBLEM_JSON, help="Pfad für den JSON-Datensatz.")
def cmd_generate(seed: int, num_classes: int, no_meeting: bool, output: Path):
    """Erzeugt einen Beispiel-Datensatz und speichert ihn als JSON."""
    from data.sample_data import SampleDataGenerator

    gen = SampleDataGenerator(num_classes=num_classes, seed=seed, with_meeting=not no_meeting)
    problem = gen.generate()
    gen.print_summary(problem)
    problem.save_json(output)
    console.print(f"[green]✓[/green] Datensatz gespeichert: {output}")


# ─── FEASIBILITY ──────────────────────────────────────────────────────────────

@click.command("feasibility")
@click.argument("problem_path", type=click.Path(path_type=Path))
@click.option("--config", "config_path", type=click.Path(path_type=Path), default=None)
def cmd_feasibility(problem_path: Path, config_path: Optional[Path]):
    """Kapazitäts-Check eines Datensatzes (ohne Suche)."""
    from analysis.feasibility import check_feasibility
    from config.schema import SolverBackend

    config = _load_config(config_path)
    problem = _load_problem(problem_path)
    console.print(Panel(problem.summary(), title="Datensatz", border_style="cyan"))

    if config.backend == SolverBackend.CPSAT:
        report = check_feasibility(problem, config.exact.subject_max_daily_slots)
    else:
        report = check_feasibility(
            problem, config.heuristic.subject_max_daily_slots, include_meetings=False
        )
    report.print_rich()
    sys.exit(0 if report.is_feasible else 1)


# ─── SOLVE ────────────────────────────────────────────────────────────────────

@click.command("solve")
@click.argument("problem_path", type=click.Path(path_type=Path))
@click.option("--backend", type=click.Choice(["heuristic", "cpsat"]), default=None,
              help="Backend (Standard: aus der Konfiguration).")
@click.option("--config", "config_path", type=click.Path(path_type=Path), default=None)
@click.option("--pins", "pins_path", type=click.Path(path_type=Path), default=None,
              help="JSON-Datei mit gepinnten Stunden.")
@click.option("--output", "-o", type=click.Path(path_type=Path),
              default=DEFAULT_SOLUTION_JSON, help="Pfad für die Lösung.")
@click.option("--show/--no-show", default=True, help="Raster nach dem Lösen anzeigen.")
def cmd_solve(
    problem_path: Path,
    backend: Optional[str],
    config_path: Optional[Path],
    pins_path: Optional[Path],
    output: Path,
    show: bool,
):
    """Berechnet einen Stundenplan für den Datensatz."""
    from config.schema import SolverBackend
    from solver.backtracking import BacktrackingSolver
    from solver.pinning import PinManager
    from solver.scheduler import ExactSolver

    config = _load_config(config_path)
    problem = _load_problem(problem_path)
    chosen = SolverBackend(backend) if backend else config.backend

    pins = []
    if pins_path is not None:
        pin_mgr = PinManager()
        try:
            pin_mgr.load_json(pins_path)
        except (FileNotFoundError, ValueError) as e:
            console.print(f"[red bold]Pins konnten nicht geladen werden:[/red bold]\n{e}")
            sys.exit(1)
        pins = pin_mgr.get_pins()

    console.print(Panel(problem.summary(), title="Datensatz", border_style="cyan"))
    with console.status(f"[bold]Löse mit Backend '{chosen.value}'...[/bold]"):
        if chosen == SolverBackend.CPSAT:
            result = ExactSolver(problem, config.exact).solve(pins=pins)
        else:
            result = BacktrackingSolver(problem, config.heuristic).solve(pins=pins)

    stats = result.stats
    console.print(
        f"Platziert: {stats.assigned}/{stats.lessons_total} | "
        f"Slots: {stats.assigned_slots} | Backtracks: {stats.backtracks} | "
        f"Zeit: {stats.elapsed_ms:.0f} ms"
        + (f" | Status: {result.solver_status}" if result.solver_status else "")
    )
    if result.skipped:
        console.print(f"[yellow]Übersprungen (Backend plant keine Besprechungen): "
                      f"{', '.join(result.skipped)}[/yellow]")

    if not result.success:
        failure = result.failure
        console.print(f"[red bold]Keine Lösung ({failure.kind.value}):[/red bold] {failure.message}")
        sys.exit(1)

    if show:
        _print_timetable(result.timetable)
    for m in result.meeting_assignments:
        console.print(f"Besprechung {m.lesson_id}: Slot {m.slot}")
    result.save_json(output)
    console.print(f"[green]✓[/green] Lösung gespeichert: {output}")


# ─── EDIT ─────────────────────────────────────────────────────────────────────

@click.command("edit")
@click.argument("timetable_path", type=click.Path(path_type=Path))
@click.argument("request_path", type=click.Path(path_type=Path))
@click.option("--problem", "problem_path", type=click.Path(path_type=Path), default=None,
              help="Datensatz, um Besprechungen der Lösung als Lehrer-Belegung zu berücksichtigen.")
@click.option("--output", "-o", type=click.Path(path_type=Path),
              default=DEFAULT_EDITED_JSON, help="Pfad für das geänderte Raster.")
def cmd_edit(
    timetable_path: Path,
    request_path: Path,
    problem_path: Optional[Path],
    output: Path,
):
    """Prüft eine Verschiebe-/Entfern-/Tausch-Anfrage und wendet sie an."""
    from pydantic import ValidationError

    from analysis.diff import diff_timetables
    from editing.request import EditRequest
    from editing.validator import EditValidator

    result, timetable = _load_timetable(timetable_path)
    try:
        with open(request_path, "r", encoding="utf-8") as f:
            request = EditRequest.model_validate_json(f.read())
    except (OSError, ValidationError) as e:
        console.print(f"[red bold]Anfrage ungültig:[/red bold]\n{e}")
        sys.exit(1)

    reserved: dict[str, list[int]] = {}
    if problem_path is not None and result is not None:
        problem = _load_problem(problem_path)
        meetings = {m.id: m for m in problem.meeting_lessons}
        for assignment in result.meeting_assignments:
            meeting = meetings.get(assignment.lesson_id)
            if meeting is None:
                continue
            for tid in meeting.teachers():
                reserved.setdefault(tid, []).extend(
                    range(assignment.slot, assignment.slot + meeting.duration)
                )

    outcome = EditValidator(timetable, reserved).apply(request)
    if not outcome.ok:
        rejection = outcome.rejection
        console.print(f"[red bold]Abgelehnt ({rejection.kind.value}):[/red bold] {rejection.reason}")
        sys.exit(1)

    diff_timetables(timetable, outcome.timetable).print_rich()
    if result is not None:
        result.timetable = outcome.timetable
        result.save_json(output)
    else:
        output.parent.mkdir(parents=True, exist_ok=True)
        with open(output, "w", encoding="utf-8") as f:
            f.write(outcome.timetable.model_dump_json(indent=2))
    console.print(f"[green]✓[/green] Geändertes Raster gespeichert: {output}")


# ─── CHECK ────────────────────────────────────────────────────────────────────

@click.command("check")
@click.argument("timetable_path", type=click.Path(path_type=Path))
@click.option("--problem", "problem_path", type=click.Path(path_type=Path), default=None,
              help="Datensatz für Vollständigkeit und Sperrzeiten.")
@click.option("--subject-cap", type=click.IntRange(min=1), default=None,
              help="Max. Slots pro Tag je Klasse/Fach/Lehrer.")
def cmd_check(timetable_path: Path, problem_path: Optional[Path], subject_cap: Optional[int]):
    """Prüft ein Raster auf Doppelbelegungen und andere Verletzungen."""
    from analysis.solution_validator import SolutionValidator

    result, timetable = _load_timetable(timetable_path)
    problem = _load_problem(problem_path) if problem_path is not None else None
    meetings = result.meeting_assignments if result is not None else []

    report = SolutionValidator().validate(
        timetable, problem, meetings, subject_max_daily_slots=subject_cap
    )
    report.print_rich()
    sys.exit(0 if report.is_valid else 1)


# ─── HAUPT-CLI ────────────────────────────────────────────────────────────────

@click.group()
@click.option("--verbose", "-v", is_flag=True, default=False, help="Solver-Logging anzeigen.")
def cli(verbose: bool):
    """Stundenplan-Engine: Backtracking- und CP-SAT-Solver mit Edit-Validator.

    Starten Sie mit: python main.py generate
    """
    if verbose:
        from rich.logging import RichHandler

        logging.basicConfig(
            level=logging.INFO,
            format="%(message)s",
            datefmt="[%X]",
            handlers=[RichHandler(console=console, show_path=False)],
            force=True,
        )


def main():
    """Einstiegspunkt."""
    cli()


# Befehle registrieren
cli.add_command(cmd_config)
cli.add_command(cmd_generate)
cli.add_command(cmd_feasibility)
cli.add_command(cmd_solve)
cli.add_command(cmd_edit)
cli.add_command(cmd_check)


if __name__ == "__main__":
    main()
