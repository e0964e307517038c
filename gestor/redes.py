"""HTTP routes for networks of cells."""

from __future__ import annotations

import functools
import re

from flask import Blueprint, jsonify, request
from sqlalchemy.exc import SQLAlchemyError

from gestor.database import Database
from gestor.models import BindError, Rede, bind_json, to_json

_UINT_MAX = 2**64 - 1
_STORE_ERRORS = (LookupError, SQLAlchemyError, OverflowError)


class _InvalidId(ValueError):
    def __init__(self) -> None:
        super().__init__("Invalid ID")


def _parse_uint(text: str) -> int:
    if re.fullmatch(r"[0-9]+", text) is None or int(text) > _UINT_MAX:
        raise _InvalidId()
    return int(text)


def _json_errors(view):
    @functools.wraps(view)
    def wrapper(*args, **kwargs):
        try:
            return view(*args, **kwargs)
        except (_InvalidId, BindError) as exc:
            return jsonify({"error": str(exc)}), 400
        except _STORE_ERRORS as exc:
            return jsonify({"error": str(exc)}), 500

    return wrapper


def create_redes_blueprint(db: Database) -> Blueprint:
    """Routes under ``/redes``."""
    bp = Blueprint("redes", __name__, url_prefix="/redes")

    @bp.get("")
    @_json_errors
    def get_redes():
        return jsonify(to_json(db.get_redes())), 200

    @bp.post("")
    @_json_errors
    def create_rede():
        rede = bind_json(Rede, request.get_data())
        return jsonify(to_json(db.create_rede(rede))), 200

    @bp.put("/<rede_id>")
    @_json_errors
    def update_rede(rede_id):
        record_id = _parse_uint(rede_id)
        rede = bind_json(Rede, request.get_data())
        rede.id = record_id
        return jsonify(to_json(db.update_rede(rede))), 200

    @bp.delete("/<rede_id>")
    @_json_errors
    def delete_rede(rede_id):
        db.delete_rede(_parse_uint(rede_id))
        return jsonify({"message": "Rede deleted successfully"}), 200

    return bp