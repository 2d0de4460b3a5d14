"""File-backed store for saved mortgage and amortization simulations.

The file holds one JSON object with a list of saved simulations per kind,
keyed the same way the browser storage of the calculator kept them. Records
are normalized on read, so saves written in the legacy flat shape load like
any other until :meth:`ScenarioStore.migrate` rewrites them.
"""

import datetime
import enum
import logging
from collections.abc import Iterator
from pathlib import Path
from typing import Any

import orjson

from mortsim.schemas import MalformedRecordError, SavedSimulation, is_legacy, normalize_simulation

logger = logging.getLogger(__name__)


class SimulationKind(enum.StrEnum):
    Mortgage = "mortgage"
    Amortization = "amortization"

    @property
    def storage_key(self) -> str:
        return _STORAGE_KEYS[self]


_STORAGE_KEYS = {
    SimulationKind.Mortgage: "mortgage-calculator-simulations",
    SimulationKind.Amortization: "amortization-simulations",
}


class ScenarioNotFoundError(KeyError):
    def __init__(self, kind: SimulationKind, name: str) -> None:
        super().__init__(f"No {kind} simulation named {name!r}")
        self.kind = kind
        self.name = name


class ScenarioStore:
    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def _read(self) -> dict[str, list[Any]]:
        if not self.path.exists():
            return {}
        try:
            data = orjson.loads(self.path.read_bytes())
        except orjson.JSONDecodeError as exc:
            raise MalformedRecordError(f"{self.path}: {exc}") from exc
        if not isinstance(data, dict):
            raise MalformedRecordError(f"{self.path}: expected an object at the top level")
        return data

    def _write(self, data: dict[str, list[Any]]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_bytes(orjson.dumps(data, option=orjson.OPT_INDENT_2))

    def _records(self, kind: SimulationKind) -> list[Any]:
        return list(self._read().get(kind.storage_key, []))

    def all(self, kind: SimulationKind) -> Iterator[SavedSimulation]:
        for raw in self._records(kind):
            try:
                yield normalize_simulation(raw)
            except MalformedRecordError as exc:
                logger.warning("Skipping malformed %s simulation: %s", kind, exc)

    def names(self, kind: SimulationKind) -> list[str]:
        return [simulation.name for simulation in self.all(kind)]

    def get(self, kind: SimulationKind, name: str) -> SavedSimulation:
        for raw in self._records(kind):
            if isinstance(raw, dict) and raw.get("name") == name:
                return normalize_simulation(raw)
        raise ScenarioNotFoundError(kind, name)

    def save(self, kind: SimulationKind, simulation: SavedSimulation) -> bool:
        """Store ``simulation``, replacing any saved one with the same name.

        Returns ``True`` when an existing simulation was overwritten.
        """
        if simulation.saved_at is None:
            simulation.saved_at = datetime.datetime.now(datetime.UTC).isoformat()
        data = self._read()
        records = list(data.get(kind.storage_key, []))
        record = simulation.to_dict()
        for i, raw in enumerate(records):
            if isinstance(raw, dict) and raw.get("name") == simulation.name:
                records[i] = record
                replaced = True
                break
        else:
            records.append(record)
            replaced = False
        data[kind.storage_key] = records
        self._write(data)
        logger.info("Saved %s simulation %r", kind, simulation.name)
        return replaced

    def delete(self, kind: SimulationKind, name: str) -> None:
        data = self._read()
        records = data.get(kind.storage_key, [])
        kept = [raw for raw in records if not (isinstance(raw, dict) and raw.get("name") == name)]
        if len(kept) == len(records):
            raise ScenarioNotFoundError(kind, name)
        data[kind.storage_key] = kept
        self._write(data)
        logger.info("Deleted %s simulation %r", kind, name)

    def needs_migration(self) -> bool:
        key = SimulationKind.Mortgage.storage_key
        return any(isinstance(raw, dict) and is_legacy(raw) for raw in self._read().get(key, []))

    def migrate(self) -> int:
        """Rewrite legacy flat mortgage records in the nested shape and return how many changed.

        Flat amortization saves are left as they are; they load through
        :func:`normalize_simulation` on read.
        """
        data = self._read()
        key = SimulationKind.Mortgage.storage_key
        migrated = 0
        records = []
        for raw in data.get(key, []):
            if isinstance(raw, dict) and is_legacy(raw):
                raw = normalize_simulation(raw).to_dict()
                migrated += 1
            records.append(raw)
        if migrated:
            data[key] = records
            self._write(data)
            logger.info("Migrated %d simulations to the nested format", migrated)
        return migrated
