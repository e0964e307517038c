"""HTTP routes for cells, their members and their meetings."""

from __future__ import annotations

import functools
import re

from flask import Blueprint, jsonify, request
from sqlalchemy.exc import SQLAlchemyError

from gestor.database import Database
from gestor.models import (
    BindError,
    Celula,
    Encontro,
    EncontroBody,
    MembroCelula,
    bind_json,
    to_json,
)

_UINT_MAX = 2**64 - 1
_INT_MIN, _INT_MAX = -(2**63), 2**63 - 1
_STORE_ERRORS = (LookupError, SQLAlchemyError, OverflowError)


class _InvalidId(ValueError):
    def __init__(self) -> None:
        super().__init__("Invalid ID")


def _parse_uint(text: str) -> int:
    if re.fullmatch(r"[0-9]+", text) is None or int(text) > _UINT_MAX:
        raise _InvalidId()
    return int(text)


def _parse_int(text: str) -> int:
    if re.fullmatch(r"[+-]?[0-9]+", text) is None:
        raise _InvalidId()
    value = int(text)
    if not _INT_MIN <= value <= _INT_MAX:
        raise _InvalidId()
    return value


def _error(message: str, status: int):
    return jsonify({"error": message}), status


def _bind(model: type):
    return bind_json(model, request.get_data())


def _json_errors(view):
    @functools.wraps(view)
    def wrapper(*args, **kwargs):
        try:
            return view(*args, **kwargs)
        except (_InvalidId, BindError) as exc:
            return _error(str(exc), 400)
        except _STORE_ERRORS as exc:
            return _error(str(exc), 500)

    return wrapper


def create_celulas_blueprint(db: Database) -> Blueprint:
    """Routes under ``/celulas``."""
    bp = Blueprint("celulas", __name__, url_prefix="/celulas")

    @bp.get("")
    @_json_errors
    def get_celulas():
        return jsonify(to_json(db.get_celulas())), 200

    @bp.post("")
    @_json_errors
    def create_celula():
        celula = _bind(Celula)
        return jsonify(to_json(db.create_celula(celula))), 201

    @bp.put("/<celula_id>")
    @_json_errors
    def update_celula(celula_id):
        record_id = _parse_uint(celula_id)
        celula = _bind(Celula)
        celula.id = record_id
        return jsonify(to_json(db.update_celula(celula))), 200

    @bp.delete("/<celula_id>")
    @_json_errors
    def delete_celula(celula_id):
        db.delete_celula(_parse_uint(celula_id))
        return "", 204

    @bp.get("/<celula_id>")
    @_json_errors
    def get_celula_by_id(celula_id):
        return jsonify(to_json(db.get_celula_by_id(_parse_uint(celula_id)))), 200

    @bp.get("/<celula_id>/membros")
    @_json_errors
    def get_membros_celula(celula_id):
        return jsonify(to_json(db.get_membros_celula(_parse_uint(celula_id)))), 200

    @bp.post("/<celula_id>/membros")
    @_json_errors
    def adicionar_membro_celula(celula_id):
        record_id = _parse_uint(celula_id)
        membro = _bind(MembroCelula)
        membro.id_celula = record_id
        return jsonify(to_json(db.adicionar_membro_celula(membro))), 201

    @bp.get("/<celula_id>/encontros")
    @_json_errors
    def get_encontros_celula(celula_id):
        encontros = db.get_encontro_by_id_celula(_parse_uint(celula_id))
        return jsonify(to_json(encontros) if encontros else None), 200

    @bp.post("/<celula_id>/encontros")
    @_json_errors
    def create_encontro(celula_id):
        record_id = _parse_int(celula_id)
        body: EncontroBody = _bind(EncontroBody)
        encontro = Encontro(
            id_celula=record_id,
            data=body.data,
            pregador=body.pregador,
            qtd_presentes=body.qtd_presentes,
            qtd_visitantes=body.qtd_visitantes,
            oferta_arrecadada=body.oferta_arrecadada,
        )
        created = db.create_encontro(encontro, body.membros_presentes)
        return jsonify(to_json(created)), 201

    @bp.put("/<celula_id>/encontros/<encontro_id>")
    @_json_errors
    def update_encontro(celula_id, encontro_id):
        # The record is identified by the first path segment; the second is not consulted.
        record_id = _parse_uint(celula_id)
        encontro = _bind(Encontro)
        encontro.id = record_id
        return jsonify(to_json(db.update_encontro(encontro))), 200

    return bp