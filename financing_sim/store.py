"""Persistence layer for saved simulations.

Saved simulations are kept the way the browser application kept them: one JSON
array of simulation records stored under a single named key of a keyed string
store. ``KeyValueStore`` provides that store on top of any SQLAlchemy-compatible
database (SQLite by default), and ``SimulationRepository`` reads and writes the
collection, so the calculation core never depends on the storage mechanism.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import List, Optional
from uuid import uuid4

from sqlalchemy import Column, DateTime, String, Text, create_engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import declarative_base, sessionmaker

from .config import DEFAULT_DATABASE_URL, DEFAULT_STORAGE_KEY
from .data_models import Simulation
from .engine import normalize_method
from .exceptions import SimulationNotFoundError, StorageError
from .logging import get_logger
from .serialization import dumps_simulations, loads_simulations

logger = get_logger(__name__)

Base = declarative_base()


class KeyValueEntryModel(Base):
    __tablename__ = "kv_entries"

    key = Column(String(255), primary_key=True)
    value = Column(Text, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


class KeyValueStore:
    """Database-backed string store addressed by key."""

    def __init__(self, url: str) -> None:
        self._engine = create_engine(url, future=True)
        Base.metadata.create_all(self._engine)
        self._session_factory = sessionmaker(self._engine, expire_on_commit=False, future=True)

    def get(self, key: str) -> Optional[str]:
        with self._session_factory() as session:
            row = session.get(KeyValueEntryModel, key)
            return row.value if row else None

    def set(self, key: str, value: str) -> None:
        with self._session_factory() as session:
            row = session.get(KeyValueEntryModel, key)
            if row:
                row.value = value
                row.updated_at = datetime.utcnow()
            else:
                session.add(KeyValueEntryModel(key=key, value=value))
            session.commit()

    def delete(self, key: str) -> None:
        with self._session_factory() as session:
            row = session.get(KeyValueEntryModel, key)
            if row:
                session.delete(row)
                session.commit()

    def dispose(self) -> None:
        self._engine.dispose()


class SimulationRepository:
    """The saved-simulations collection held under one key."""

    def __init__(self, store: KeyValueStore, key: str = DEFAULT_STORAGE_KEY) -> None:
        self._store = store
        self._key = key

    def load(self) -> List[Simulation]:
        return loads_simulations(self._store.get(self._key))

    def save(self, simulations: List[Simulation]) -> bool:
        """Replace the stored collection; returns ``False`` if the write failed."""
        payload = dumps_simulations(simulations)
        try:
            self._store.set(self._key, payload)
        except SQLAlchemyError:
            logger.exception("Failed to save %d simulations under %r", len(simulations), self._key)
            return False
        logger.debug("Saved %d simulations under %r", len(simulations), self._key)
        return True

    def add(self, simulation: Simulation) -> Simulation:
        """Append a simulation, assigning an id and save date when missing.

        Raises
        ------
        StorageError
            If the collection could not be written.
        """
        if not simulation.id:
            simulation.id = uuid4().hex
        if simulation.created_on is None:
            simulation.created_on = date.today()
        simulations = self.load()
        simulations.append(simulation)
        if not self.save(simulations):
            raise StorageError(f"Could not save simulation {simulation.id}")
        return simulation

    def get(self, simulation_id: str) -> Simulation:
        for simulation in self.load():
            if simulation.id == simulation_id:
                return simulation
        raise SimulationNotFoundError(f"Simulation {simulation_id} not found")

    def replace(self, simulation: Simulation) -> bool:
        simulations = self.load()
        for index, existing in enumerate(simulations):
            if existing.id == simulation.id:
                simulations[index] = simulation
                return self.save(simulations)
        raise SimulationNotFoundError(f"Simulation {simulation.id} not found")

    def remove(self, simulation_id: str) -> bool:
        simulations = self.load()
        remaining = [s for s in simulations if s.id != simulation_id]
        if len(remaining) == len(simulations):
            return False
        return self.save(remaining)

    def list_simulations(self, method: Optional[str] = None) -> List[Simulation]:
        """Return saved simulations, optionally only those of one method.

        ``method`` of ``None`` or ``"ALL"`` returns everything.
        """
        simulations = self.load()
        if not method or method.upper() == "ALL":
            return simulations
        wanted = normalize_method(method)
        return [s for s in simulations if s.method == wanted]


def create_store_from_env(url: Optional[str]) -> KeyValueStore:
    return KeyValueStore(url or DEFAULT_DATABASE_URL)
