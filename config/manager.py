"""Konfigurationsmanager: Laden, Speichern und Validieren der Engine-Config.

Die YAML-Datei trägt Abschnittskommentare (ruamel.yaml) und bleibt von Hand
editierbar.
"""

import json
from datetime import date
from pathlib import Path
from typing import Optional

from rich.console import Console
from ruamel.yaml import YAML
from ruamel.yaml.comments import CommentedMap

from config.defaults import default_engine_config
from config.schema import EngineConfig

console = Console()
yaml = YAML()
yaml.default_flow_style = False
yaml.width = 120


# ─── Kommentare ───

_YAML_HEADER = f"""\
# ============================================
# Stundenplan-Engine: Solver-Konfiguration
# Erstellt: {date.today().isoformat()}
# ============================================
"""

_SECTION_COMMENTS = {
    "backend": (
        "Backend",
        "heuristic = Backtracking mit Forward Checking, cpsat = OR-Tools CP-SAT.",
    ),
    "heuristic": (
        "Backtracking-Solver",
        "Abbruch nach max_backtracks oder time_limit_ms (ohne Teil-Lösung).",
    ),
    "exact": (
        "CP-SAT-Solver",
        "Obergrenzen: null = deaktiviert.",
    ),
}


class ConfigManager:
    CONFIG_DIR = Path("config")
    DEFAULT_CONFIG = CONFIG_DIR / "engine_config.yaml"

    def first_run_check(self) -> bool:
        """True, solange unter DEFAULT_CONFIG noch keine Datei liegt."""
        return not self.DEFAULT_CONFIG.exists()

    # ─── Laden ───

    def load(self, path: Optional[Path] = None) -> EngineConfig:
        """Liest die YAML-Datei und validiert sie gegen ``EngineConfig``."""
        target = Path(path) if path else self.DEFAULT_CONFIG
        if not target.exists():
            raise FileNotFoundError(
                f"Konfigurationsdatei nicht gefunden: {target}\n"
                f"Führen Sie 'python main.py config init' aus, um eine anzulegen."
            )
        with open(target, "r", encoding="utf-8") as f:
            raw = yaml.load(f)
        try:
            return EngineConfig.model_validate(dict(raw or {}))
        except Exception as e:
            raise ValueError(
                f"Konfigurationsdatei ungültig: {target}\n"
                f"Pydantic-Fehler: {e}"
            ) from e

    def load_or_default(self, path: Optional[Path] = None) -> EngineConfig:
        """Wie ``load``, aber Default-Config wenn (ohne expliziten Pfad) nichts existiert."""
        if path is None and self.first_run_check():
            return default_engine_config()
        return self.load(path)

    # ─── Speichern ───

    def save(self, config: EngineConfig, path: Optional[Path] = None) -> Path:
        """Schreibt die Config mit Kopfzeile und Abschnittskommentaren."""
        target = Path(path) if path else self.DEFAULT_CONFIG
        target.parent.mkdir(parents=True, exist_ok=True)

        data = self._build_commented_yaml(config)

        with open(target, "w", encoding="utf-8") as f:
            f.write(_YAML_HEADER + "\n")
            yaml.dump(data, f)

        console.print(f"[green]✓[/green] Konfiguration gespeichert: {target}")
        return target

    def _build_commented_yaml(self, config: EngineConfig) -> CommentedMap:
        """CommentedMap mit einem Kommentarblock vor jedem Abschnitt."""
        raw = json.loads(config.model_dump_json())
        cm = CommentedMap(raw)

        for field, (label, comment) in _SECTION_COMMENTS.items():
            cm.yaml_set_comment_before_after_key(
                field,
                before=f"\n─── {label} ───" + (f"\n{comment}" if comment else ""),
            )

        # Inline-Kommentar für die Worker-Zahl
        if "exact" in cm:
            exact_map = CommentedMap(cm["exact"])
            exact_map.yaml_add_eol_comment("0 = alle Kerne", "num_workers")
            cm["exact"] = exact_map

        return cm
