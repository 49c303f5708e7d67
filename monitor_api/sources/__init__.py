"""Sources - Fuentes de lecturas (store en memoria, SQL y simulador)."""

from .base import ReadingSource, ReadingSourceError, UpdateCallback
from .in_memory import InMemoryReadingStore
from .simulator import (
    ReadingSimulator,
    SimulatorState,
    always_push,
    generate_reading,
    never_push,
    probabilistic_policy,
)
from .sql_store import SqlReadingStore

__all__ = [
    "ReadingSource",
    "ReadingSourceError",
    "UpdateCallback",
    "InMemoryReadingStore",
    "SqlReadingStore",
    "ReadingSimulator",
    "SimulatorState",
    "always_push",
    "generate_reading",
    "never_push",
    "probabilistic_policy",
]
