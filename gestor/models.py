"""Record types, JSON binding and JSON rendering for the church management API."""

from __future__ import annotations

import dataclasses
import json
import re
from datetime import datetime, timedelta, timezone
from functools import cache
from typing import Any, Optional

from sqlalchemy import Boolean, DateTime, Float, Integer, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, declared_attr, mapped_column
from sqlalchemy.types import TypeDecorator

ZERO_TIME = "0001-01-01T00:00:00Z"

_INT_RANGES = {"int": (-(2**63), 2**63 - 1), "uint": (0, 2**64 - 1)}
_ZEROS: dict[str, Any] = {
    "int": 0,
    "uint": 0,
    "float": 0.0,
    "str": "",
    "bool": False,
    "time": None,
    "nulltime": None,
    "int_list": None,
}
_RFC3339 = re.compile(
    r"^(\d{4}-\d{2}-\d{2})[Tt](\d{2}:\d{2}:\d{2})(?:\.(\d+))?([Zz]|[+-]\d{2}:\d{2})$"
)


class BindError(ValueError):
    """A request body could not be bound to a record type."""


class _UTCDateTime(TypeDecorator):
    """Timestamp stored as naive UTC and read back as an aware UTC datetime."""

    impl = DateTime
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc).replace(tzinfo=None)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


_COLUMN_TYPES = {
    "int": Integer,
    "uint": Integer,
    "float": Float,
    "str": Text,
    "bool": Boolean,
    "time": _UTCDateTime,
    "nulltime": _UTCDateTime,
}


def _column(key: str, kind: str, **kwargs):
    return mapped_column(_COLUMN_TYPES[kind](), info={"json": key, "kind": kind}, **kwargs)


@dataclasses.dataclass(frozen=True)
class _Field:
    attr: str
    key: str
    kind: str

    @property
    def zero(self) -> Any:
        return _ZEROS[self.kind]


class Base(DeclarativeBase):
    """Declarative base; fields left out of the constructor get zero values."""

    def __init__(self, **kwargs: Any) -> None:
        fields = {field.attr: field for field in _fields(type(self))}
        for name in kwargs:
            if name not in fields:
                raise TypeError(f"{name!r} is an invalid keyword argument for {type(self).__name__}")
        for attr, field in fields.items():
            setattr(self, attr, kwargs.get(attr, field.zero))


class _GormModel:
    """Identifier, timestamps and soft-delete marker shared by every table."""

    @declared_attr
    def id(cls) -> Mapped[int]:
        return _column("ID", "uint", primary_key=True, autoincrement=True)

    @declared_attr
    def created_at(cls) -> Mapped[Optional[datetime]]:
        return _column("CreatedAt", "time", nullable=True)

    @declared_attr
    def updated_at(cls) -> Mapped[Optional[datetime]]:
        return _column("UpdatedAt", "time", nullable=True)

    @declared_attr
    def deleted_at(cls) -> Mapped[Optional[datetime]]:
        return _column("DeletedAt", "nulltime", nullable=True, index=True)


class Celula(_GormModel, Base):
    __tablename__ = "celulas"

    id_rede: Mapped[int] = _column("id_rede", "int")
    nome: Mapped[str] = _column("nome", "str")
    lider: Mapped[str] = _column("lider", "str")
    supervisor: Mapped[int] = _column("supervisor", "int")
    qtd_membros: Mapped[int] = _column("qtd_membros", "int")
    local: Mapped[str] = _column("local", "str")
    rede: Mapped[str] = _column("rede", "str")
    dia_da_semana: Mapped[str] = _column("dia_da_semana", "str")
    horario: Mapped[str] = _column("horario", "str")


class Encontro(_GormModel, Base):
    __tablename__ = "encontros"

    id_celula: Mapped[int] = _column("id_celula", "int")
    data: Mapped[Optional[datetime]] = _column("data", "time", nullable=True)
    pregador: Mapped[str] = _column("pregador", "str")
    qtd_presentes: Mapped[int] = _column("qtd_presentes", "int")
    qtd_visitantes: Mapped[int] = _column("qtd_visitantes", "int")
    oferta_arrecadada: Mapped[float] = _column("oferta_arrecadada", "float")


def _json_field(key: str, kind: str, default: Any = None):
    return dataclasses.field(default=default, metadata={"json": key, "kind": kind})


@dataclasses.dataclass
class EncontroBody:
    """A meeting together with the ids of the members who attended."""

    id: int = _json_field("ID", "uint", 0)
    data: Optional[datetime] = _json_field("data", "time")
    pregador: str = _json_field("pregador", "str", "")
    qtd_presentes: int = _json_field("qtd_presentes", "int", 0)
    qtd_visitantes: int = _json_field("qtd_visitantes", "int", 0)
    oferta_arrecadada: float = _json_field("oferta_arrecadada", "float", 0.0)
    membros_presentes: Optional[list[int]] = _json_field("membros_presentes", "int_list")


class MembroCelula(_GormModel, Base):
    __tablename__ = "membro_celulas"

    id_celula: Mapped[int] = _column("id_celula", "int")
    nome: Mapped[str] = _column("nome", "str")
    telefone: Mapped[str] = _column("telefone", "str")
    email: Mapped[str] = _column("email", "str")
    data_nasc: Mapped[Optional[datetime]] = _column("data_nascimento", "time", nullable=True)
    endereco: Mapped[str] = _column("endereco", "str")
    batizado: Mapped[bool] = _column("batizado", "bool")


class MembroCelulaEncontro(_GormModel, Base):
    __tablename__ = "membro_celula_encontros"

    id_celula: Mapped[int] = _column("id_celula", "int")
    id_encontro: Mapped[int] = _column("id_encontro", "int")
    id_membro: Mapped[int] = _column("id_membro", "int")


class Culto(_GormModel, Base):
    __tablename__ = "cultos"

    nome: Mapped[str] = _column("Nome", "str")
    data: Mapped[Optional[datetime]] = _column("Data", "time", nullable=True)
    pastor: Mapped[str] = _column("Pastor", "str")
    qtd_jovens: Mapped[int] = _column("QTDJovens", "int")
    qtd_adultos: Mapped[int] = _column("QTDAdultos", "int")
    qtd_criancas: Mapped[int] = _column("QTDCriancas", "int")
    qtd_visitantes: Mapped[int] = _column("QTDVisitantes", "int")
    qtd_batismo: Mapped[int] = _column("QTDBatismo", "int")
    qtd_conversao: Mapped[int] = _column("QTDConversao", "int")
    qtd_oferta_arrecadada: Mapped[int] = _column("QTDOfertaArrecadada", "int")


class MetricasCulto(_GormModel, Base):
    __tablename__ = "metricas_cultos"

    culto: Mapped[int] = _column("Culto", "uint")
    data: Mapped[Optional[datetime]] = _column("Data", "time", nullable=True)
    pastor: Mapped[str] = _column("Pastor", "str")
    jovens: Mapped[int] = _column("Jovens", "int")
    mulheres: Mapped[int] = _column("Mulheres", "int")
    homens: Mapped[int] = _column("Homens", "int")
    adultos: Mapped[int] = _column("Adultos", "int")
    criancas: Mapped[int] = _column("Criancas", "int")
    visitantes: Mapped[int] = _column("Visitantes", "int")
    oferta_arrecadada: Mapped[int] = _column("OfertaArrecadada", "int")


class Turma(_GormModel, Base):
    __tablename__ = "turmas"

    nome: Mapped[str] = _column("Nome", "str")
    descricao: Mapped[str] = _column("Descricao", "str")
    periodo: Mapped[str] = _column("Periodo", "str")
    data_inicio: Mapped[Optional[datetime]] = _column("DataInicio", "time", nullable=True)
    data_fim: Mapped[Optional[datetime]] = _column("DataFim", "time", nullable=True)


class Aula(_GormModel, Base):
    __tablename__ = "aulas"

    id_turma: Mapped[int] = _column("IDTurma", "uint")
    data: Mapped[Optional[datetime]] = _column("Data", "time", nullable=True)
    professor: Mapped[str] = _column("Professor", "str")
    qtd_presentes: Mapped[int] = _column("QTDPresentes", "int")


class Pastor(_GormModel, Base):
    __tablename__ = "pastors"

    nome: Mapped[str] = _column("nome", "str")
    telefone: Mapped[str] = _column("telefone", "str")
    email: Mapped[str] = _column("email", "str")


class Supervisor(_GormModel, Base):
    __tablename__ = "supervisors"

    nome: Mapped[str] = _column("nome", "str")
    telefone: Mapped[str] = _column("telefone", "str")
    email: Mapped[str] = _column("email", "str")


class Lider(_GormModel, Base):
    __tablename__ = "liders"

    nome: Mapped[str] = _column("nome", "str")
    telefone: Mapped[str] = _column("telefone", "str")
    email: Mapped[str] = _column("email", "str")


class Membro(_GormModel, Base):
    __tablename__ = "membros"

    nome: Mapped[str] = _column("nome", "str")
    telefone: Mapped[str] = _column("telefone", "str")
    email: Mapped[str] = _column("email", "str")


class Aluno(_GormModel, Base):
    __tablename__ = "alunos"

    nome: Mapped[str] = _column("nome", "str")
    telefone: Mapped[str] = _column("telefone", "str")


class Rede(_GormModel, Base):
    __tablename__ = "redes"

    nome: Mapped[str] = _column("nome", "str")
    label: Mapped[str] = _column("label", "str")


@cache
def _fields(cls: type) -> tuple[_Field, ...]:
    if dataclasses.is_dataclass(cls):
        return tuple(
            _Field(f.name, f.metadata["json"], f.metadata["kind"]) for f in dataclasses.fields(cls)
        )
    if isinstance(cls, type) and issubclass(cls, Base):
        mapper = cls.__mapper__
        return tuple(
            _Field(prop.key, prop.columns[0].info["json"], prop.columns[0].info["kind"])
            for prop in mapper.column_attrs
        )
    raise TypeError(f"{cls!r} is not a record type")


def _json_type(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "bool"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, list):
        return "array"
    if isinstance(value, dict):
        return "object"
    return type(value).__name__


def _parse_time(text: str) -> datetime:
    match = _RFC3339.match(text)
    if match is None:
        raise ValueError(text)
    date, clock, fraction, offset = match.groups()
    micro = ((fraction or "") + "000000")[:6]
    offset = "+00:00" if offset in ("Z", "z") else offset
    return datetime.fromisoformat(f"{date}T{clock}.{micro}{offset}")


def _format_time(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    text = (
        f"{value.year:04d}-{value.month:02d}-{value.day:02d}"
        f"T{value.hour:02d}:{value.minute:02d}:{value.second:02d}"
    )
    if value.microsecond:
        text += "." + f"{value.microsecond:06d}".rstrip("0")
    offset = value.utcoffset() or timedelta(0)
    if offset == timedelta(0):
        return text + "Z"
    sign = "-" if offset < timedelta(0) else "+"
    minutes = abs(int(offset.total_seconds())) // 60
    return f"{text}{sign}{minutes // 60:02d}:{minutes % 60:02d}"


def _is_int(value: Any, kind: str) -> bool:
    if isinstance(value, bool) or not isinstance(value, int):
        return False
    low, high = _INT_RANGES[kind]
    return low <= value <= high


def _convert(model: type, field: _Field, value: Any) -> Any:
    kind = field.kind
    error = BindError(
        f"cannot unmarshal {_json_type(value)} into field {model.__name__}.{field.key} of type {kind}"
    )
    if kind in _INT_RANGES:
        if not _is_int(value, kind):
            raise error
        return value
    if kind == "float":
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise error
        return float(value)
    if kind == "str":
        if not isinstance(value, str):
            raise error
        return value
    if kind == "bool":
        if not isinstance(value, bool):
            raise error
        return value
    if kind in ("time", "nulltime"):
        if not isinstance(value, str):
            raise error
        try:
            return _parse_time(value)
        except ValueError as exc:
            raise BindError(f"parsing time {value!r}: not an RFC 3339 timestamp") from exc
    if kind == "int_list":
        if not isinstance(value, list):
            raise error
        items = [0 if item is None else item for item in value]
        if not all(_is_int(item, "int") for item in items):
            raise error
        return items
    raise error


def bind_json(model: type, payload: Any):
    """Build a ``model`` instance from a JSON object, given as text, bytes or a dict."""
    if isinstance(payload, (bytes, bytearray)):
        try:
            payload = payload.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise BindError(str(exc)) from exc
    if isinstance(payload, str):
        if not payload.strip():
            raise BindError("EOF")
        try:
            payload = json.loads(payload)
        except json.JSONDecodeError as exc:
            raise BindError(str(exc)) from exc
    if not isinstance(payload, dict):
        raise BindError(f"cannot unmarshal {_json_type(payload)} into {model.__name__}")

    fields = _fields(model)
    exact = {field.key: field for field in fields}
    folded: dict[str, _Field] = {}
    for field in fields:
        folded.setdefault(field.key.lower(), field)

    values: dict[str, Any] = {}
    for key, value in payload.items():
        field = exact.get(key) or folded.get(str(key).lower())
        if field is None or value is None:
            continue
        values[field.attr] = _convert(model, field, value)
    return model(**values)


def _encode(field: _Field, value: Any) -> Any:
    if field.kind == "time":
        return ZERO_TIME if value is None else _format_time(value)
    if field.kind == "nulltime":
        return None if value is None else _format_time(value)
    if field.kind == "int_list":
        return None if value is None else list(value)
    return value


def to_json(obj: Any) -> Any:
    """Render a record, an ``EncontroBody`` or a list of them as JSON-ready data."""
    if obj is None:
        return None
    if isinstance(obj, (list, tuple)):
        return [to_json(item) for item in obj]
    return {field.key: _encode(field, getattr(obj, field.attr)) for field in _fields(type(obj))}