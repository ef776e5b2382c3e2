"""Food density repositories keyed by normalized food name."""

from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
import warnings
from pathlib import Path
from types import MappingProxyType
from typing import Any, Callable, Dict, Mapping, Protocol, runtime_checkable

from ..core.types import FoodDensityEntry, InvalidInputError, Shape

logger = logging.getLogger(__name__)

DEFAULT_DENSITY_ENTRY = FoodDensityEntry(
    density=1.0,
    density_variance=0.0,
    shape_prior=Shape.IRREGULAR,
    compressibility=0.5,
)

# density g/ml, variance, shape prior, compressibility
SEED_DENSITIES: Dict[str, Dict[str, Any]] = {
    "Apple": {"density": 0.85, "variance": 0.1, "shape": "spherical", "compressibility": 0.1},
    "Banana": {"density": 0.9, "variance": 0.05, "shape": "cylindrical", "compressibility": 0.2},
    "Orange": {"density": 0.87, "variance": 0.08, "shape": "spherical", "compressibility": 0.1},
    "Grilled Chicken Breast": {"density": 1.1, "variance": 0.15, "shape": "irregular", "compressibility": 0.05},
    "White Rice": {"density": 0.75, "variance": 0.1, "shape": "irregular", "compressibility": 0.3},
    "Broccoli": {"density": 0.6, "variance": 0.2, "shape": "irregular", "compressibility": 0.4},
    "Bread": {"density": 0.4, "variance": 0.1, "shape": "rectangular", "compressibility": 0.6},
    "Pasta": {"density": 0.8, "variance": 0.1, "shape": "irregular", "compressibility": 0.2},
    "Cheese": {"density": 1.2, "variance": 0.2, "shape": "rectangular", "compressibility": 0.1},
    "Salad": {"density": 0.3, "variance": 0.15, "shape": "irregular", "compressibility": 0.7},
    "Tomato": {"density": 0.95, "variance": 0.05, "shape": "spherical", "compressibility": 0.2},
    "Carrot": {"density": 1.04, "variance": 0.05, "shape": "cylindrical", "compressibility": 0.05},
    "Potato": {"density": 1.08, "variance": 0.05, "shape": "irregular", "compressibility": 0.05},
    "Egg": {"density": 1.03, "variance": 0.03, "shape": "spherical", "compressibility": 0.05},
    "Tofu": {"density": 1.05, "variance": 0.05, "shape": "rectangular", "compressibility": 0.3},
    "Cake": {"density": 0.45, "variance": 0.15, "shape": "rectangular", "compressibility": 0.5},
}


def normalize_food_name(food_name: str) -> str:
    if not isinstance(food_name, str) or not food_name.strip():
        raise InvalidInputError(f"Food name must be a non-empty string, got {food_name!r}")
    return " ".join(food_name.split()).lower()


def seed_entries() -> Dict[str, FoodDensityEntry]:
    return {
        normalize_food_name(name): FoodDensityEntry.from_dict(values)
        for name, values in SEED_DENSITIES.items()
    }


@runtime_checkable
class DensityRepository(Protocol):
    """Read/write contract for density profiles.

    ``lookup`` never fails for a well-formed name: unknown foods resolve to
    :data:`DEFAULT_DENSITY_ENTRY`.
    """

    def lookup(self, food_name: str) -> FoodDensityEntry:
        ...

    def contains(self, food_name: str) -> bool:
        ...

    def upsert(self, food_name: str, entry: FoodDensityEntry) -> None:
        ...

    def update(
        self,
        food_name: str,
        updater: Callable[[FoodDensityEntry], FoodDensityEntry],
    ) -> FoodDensityEntry:
        """Atomically replace an entry with ``updater(current)`` and return it."""
        ...


class InMemoryDensityRepository:
    """Process-local density table.

    Readers see an immutable mapping and never lock; writers serialize on a
    lock and swap in a new mapping, so a read never observes a half-written
    entry.
    """

    def __init__(
        self,
        entries: Mapping[str, FoodDensityEntry] | None = None,
        include_seed: bool = True,
    ) -> None:
        table: Dict[str, FoodDensityEntry] = seed_entries() if include_seed else {}
        for name, entry in (entries or {}).items():
            table[normalize_food_name(name)] = entry
        self._entries: Mapping[str, FoodDensityEntry] = MappingProxyType(table)
        self._write_lock = threading.Lock()

    def lookup(self, food_name: str) -> FoodDensityEntry:
        return self._entries.get(normalize_food_name(food_name), DEFAULT_DENSITY_ENTRY)

    def contains(self, food_name: str) -> bool:
        return normalize_food_name(food_name) in self._entries

    def snapshot(self) -> Mapping[str, FoodDensityEntry]:
        return self._entries

    def upsert(self, food_name: str, entry: FoodDensityEntry) -> None:
        self.update(food_name, lambda _current: entry)

    def update(
        self,
        food_name: str,
        updater: Callable[[FoodDensityEntry], FoodDensityEntry],
    ) -> FoodDensityEntry:
        key = normalize_food_name(food_name)
        with self._write_lock:
            current = self._entries.get(key, DEFAULT_DENSITY_ENTRY)
            entry = updater(current)
            table = dict(self._entries)
            table[key] = entry
            self._entries = MappingProxyType(table)
            self._after_write()
        logger.debug("density entry for %r set to %.4f g/ml", key, entry.density)
        return entry

    def _after_write(self) -> None:
        """Hook run under the write lock after each change."""

    def __len__(self) -> int:
        return len(self._entries)


class JsonDensityRepository(InMemoryDensityRepository):
    """In-memory table persisted to a JSON file after every write.

    Entries in the file override the seed table on load. Read and write
    failures are reported as warnings and leave the in-memory table usable.
    """

    def __init__(self, path: str | Path, include_seed: bool = True) -> None:
        self.path = Path(path)
        super().__init__(self._load(), include_seed=include_seed)

    def _load(self) -> Dict[str, FoodDensityEntry]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
            return {name: FoodDensityEntry.from_dict(values) for name, values in data.items()}
        except Exception as exc:
            warnings.warn(f"Failed to load density table from {self.path}: {exc}")
            return {}

    def _after_write(self) -> None:
        data = {key: entry.to_dict() for key, entry in self._entries.items()}
        tmp_name: str | None = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            # Written beside the target, then swapped in whole.
            with tempfile.NamedTemporaryFile(
                "w",
                encoding="utf-8",
                dir=self.path.parent,
                prefix=f".{self.path.name}.",
                suffix=".tmp",
                delete=False,
            ) as f:
                tmp_name = f.name
                json.dump(data, f, indent=2, sort_keys=True)
            os.replace(tmp_name, self.path)
        except Exception as exc:
            if tmp_name is not None and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            warnings.warn(f"Failed to save density table to {self.path}: {exc}")


__all__ = [
    "DEFAULT_DENSITY_ENTRY",
    "DensityRepository",
    "InMemoryDensityRepository",
    "JsonDensityRepository",
    "SEED_DENSITIES",
    "normalize_food_name",
]
