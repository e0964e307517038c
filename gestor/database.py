"""Persistence of cells, meetings, networks and supervisors."""

from __future__ import annotations

from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
from typing import Iterator, Optional, TypeVar
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from sqlalchemy import create_engine, select, update
from sqlalchemy.engine import make_url
from sqlalchemy.orm import Session, make_transient, sessionmaker
from sqlalchemy.pool import StaticPool

from gestor.models import (
    Base,
    Celula,
    Encontro,
    EncontroBody,
    MembroCelula,
    MembroCelulaEncontro,
    Rede,
    Supervisor,
)

try:
    _LOCATION = ZoneInfo("America/Sao_Paulo")
except ZoneInfoNotFoundError:
    _LOCATION = timezone(timedelta(hours=-3), "America/Sao_Paulo")

_ENCONTROS_LIMIT = 10

R = TypeVar("R", bound=Base)


class RecordNotFound(LookupError):
    """No live record has the requested identifier."""

    def __init__(self, message: str = "record not found") -> None:
        super().__init__(message)


def _now() -> datetime:
    return datetime.now(_LOCATION)


def _engine_options(url: str) -> dict:
    parsed = make_url(url)
    if parsed.get_backend_name() != "sqlite":
        return {}
    options: dict = {"connect_args": {"check_same_thread": False}}
    if parsed.database in (None, "", ":memory:"):
        options["poolclass"] = StaticPool
    return options


def _alive(model: type[R]):
    return select(model).where(model.deleted_at.is_(None))


class Database:
    """Repository over a SQL database; soft-deleted rows are hidden from reads."""

    def __init__(self, url: str) -> None:
        self._engine = create_engine(url, **_engine_options(url))
        self._sessions = sessionmaker(self._engine, expire_on_commit=False)
        self.migrate()

    def migrate(self) -> None:
        """Create any missing tables."""
        Base.metadata.create_all(self._engine)

    @contextmanager
    def _session(self) -> Iterator[Session]:
        with self._sessions.begin() as session:
            yield session

    def _all(self, model: type[R]) -> list[R]:
        with self._session() as session:
            return list(session.scalars(_alive(model).order_by(model.id)))

    def _first(self, model: type[R], record_id: int) -> R:
        with self._session() as session:
            record = session.scalars(
                _alive(model).where(model.id == record_id).order_by(model.id).limit(1)
            ).first()
        if record is None:
            raise RecordNotFound()
        return record

    def _create(self, record: R) -> R:
        now = _now()
        make_transient(record)
        if not record.id:
            record.id = None
        if record.created_at is None:
            record.created_at = now
        if record.updated_at is None:
            record.updated_at = now
        with self._session() as session:
            session.add(record)
        return record

    def _save(self, record: R) -> R:
        if not record.id:
            return self._create(record)
        now = _now()
        record.updated_at = now
        with self._session() as session:
            stored = session.get(type(record), record.id)
            if record.created_at is None:
                stored_created = stored.created_at if stored is not None else None
                record.created_at = stored_created or now
            merged = session.merge(record)
        return merged

    def _soft_delete(self, model: type[R], record_id: int) -> None:
        with self._session() as session:
            session.execute(
                update(model)
                .where(model.id == record_id, model.deleted_at.is_(None))
                .values(deleted_at=_now())
            )

    # Cells

    def get_celulas(self) -> list[Celula]:
        return self._all(Celula)

    def get_celula_by_id(self, record_id: int) -> Celula:
        return self._first(Celula, record_id)

    def get_membros_celula(self, celula_id: int) -> list[MembroCelula]:
        with self._session() as session:
            return list(
                session.scalars(
                    _alive(MembroCelula)
                    .where(MembroCelula.id_celula == celula_id)
                    .order_by(MembroCelula.id)
                )
            )

    def get_membro_celula_by_id(self, record_id: int) -> MembroCelula:
        return self._first(MembroCelula, record_id)

    def adicionar_membro_celula(self, membro: MembroCelula) -> MembroCelula:
        return self._create(membro)

    def remover_membro_celula(self, record_id: int) -> None:
        self._soft_delete(MembroCelula, record_id)

    def create_celula(self, celula: Celula) -> Celula:
        return self._create(celula)

    def update_celula(self, celula: Celula) -> Celula:
        return self._save(celula)

    def delete_celula(self, record_id: int) -> None:
        self._soft_delete(Celula, record_id)

    # Meetings

    def get_encontros(self) -> list[Encontro]:
        return self._all(Encontro)

    def get_encontro_by_id_celula(self, celula_id: int) -> list[EncontroBody]:
        """The latest meetings of a cell, newest first, with the members present."""
        with self._session() as session:
            encontros = session.scalars(
                _alive(Encontro)
                .where(Encontro.id_celula == celula_id)
                .order_by(Encontro.created_at.desc(), Encontro.id.desc())
                .limit(_ENCONTROS_LIMIT)
            ).all()
            bodies = []
            for encontro in encontros:
                presencas = session.scalars(
                    _alive(MembroCelulaEncontro)
                    .where(MembroCelulaEncontro.id_encontro == encontro.id)
                    .order_by(MembroCelulaEncontro.id)
                ).all()
                bodies.append(
                    EncontroBody(
                        id=encontro.id,
                        data=encontro.data,
                        pregador=encontro.pregador,
                        qtd_presentes=encontro.qtd_presentes,
                        qtd_visitantes=encontro.qtd_visitantes,
                        oferta_arrecadada=encontro.oferta_arrecadada,
                        membros_presentes=[p.id_membro for p in presencas] or None,
                    )
                )
        return bodies

    def create_encontro(
        self, encontro: Encontro, membros_presentes: Optional[list[int]]
    ) -> Encontro:
        encontro = self._create(encontro)
        for membro_id in membros_presentes or ():
            self._create(
                MembroCelulaEncontro(
                    id_encontro=encontro.id,
                    id_membro=membro_id,
                    id_celula=encontro.id_celula,
                )
            )
        return encontro

    def update_encontro(self, encontro: Encontro) -> Encontro:
        return self._save(encontro)

    def delete_encontro(self, record_id: int) -> None:
        self._soft_delete(Encontro, record_id)

    # Networks

    def get_redes(self) -> list[Rede]:
        return self._all(Rede)

    def create_rede(self, rede: Rede) -> Rede:
        return self._create(rede)

    def update_rede(self, rede: Rede) -> Rede:
        return self._save(rede)

    def delete_rede(self, record_id: int) -> None:
        self._soft_delete(Rede, record_id)

    # Supervisors

    def get_supervisores(self) -> list[Supervisor]:
        return self._all(Supervisor)

    def create_supervisor(self, supervisor: Supervisor) -> Supervisor:
        return self._create(supervisor)

    def update_supervisor(self, supervisor: Supervisor) -> Supervisor:
        return self._save(supervisor)

    def delete_supervisor(self, record_id: int) -> None:
        self._soft_delete(Supervisor, record_id)

    def get_supervisor_by_id(self, record_id: int) -> Supervisor:
        return self._first(Supervisor, record_id)