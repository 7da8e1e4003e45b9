from config.schema import (
    EngineConfig,
    ExactSolverConfig,
    HeuristicConfig,
    SolverBackend,
)

# Rastergröße, wenn weder Datensatz noch CLI etwas vorgeben
DEFAULT_DAYS = 5
DEFAULT_SLOTS_PER_DAY = 7

# Auf einen Rechner zugeschnittene Obergrenze für CP-SAT-Worker
MAX_SEARCH_WORKERS = 8


def default_heuristic_config() -> HeuristicConfig:
    """Budget wie bei der interaktiven Neuberechnung: 200k Backtracks, 30 s."""
    return HeuristicConfig(max_backtracks=200_000, time_limit_ms=30_000)


def default_exact_config() -> ExactSolverConfig:
    """CP-SAT mit 2 Slots pro Tag und Fach, Besprechungen unbegrenzt."""
    return ExactSolverConfig(
        time_limit_ms=120_000,
        num_workers=MAX_SEARCH_WORKERS,
        subject_max_daily_slots=2,
    )


def default_engine_config() -> EngineConfig:
    return EngineConfig(
        backend=SolverBackend.HEURISTIC,
        heuristic=default_heuristic_config(),
        exact=default_exact_config(),
    )
