"""HTTP routes for cell supervisors."""

from __future__ import annotations

import functools
import re

from flask import Blueprint, jsonify, request
from sqlalchemy.exc import SQLAlchemyError

from gestor.database import Database
from gestor.models import BindError, Supervisor, bind_json, to_json

_UINT_MAX = 2**64 - 1
_INT_MIN, _INT_MAX = -(2**63), 2**63 - 1
_STORE_ERRORS = (LookupError, SQLAlchemyError, OverflowError)


class _InvalidId(ValueError):
    def __init__(self) -> None:
        super().__init__("Invalid supervisor ID")


def _parse_uint(text: str) -> int:
    if re.fullmatch(r"[0-9]+", text) is None or int(text) > _UINT_MAX:
        raise _InvalidId()
    return int(text)


def _parse_int_as_uint(text: str) -> int:
    """Parse a signed integer and reinterpret it as an unsigned 64-bit identifier."""
    if re.fullmatch(r"[+-]?[0-9]+", text) is None:
        raise _InvalidId()
    value = int(text)
    if not _INT_MIN <= value <= _INT_MAX:
        raise _InvalidId()
    return value % (_UINT_MAX + 1)


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


def create_supervisores_blueprint(db: Database) -> Blueprint:
    """Routes under ``/supervisores``."""
    bp = Blueprint("supervisores", __name__, url_prefix="/supervisores")

    @bp.get("")
    @_json_errors
    def get_supervisores():
        return jsonify(to_json(db.get_supervisores())), 200

    @bp.post("")
    @_json_errors
    def create_supervisor():
        supervisor = bind_json(Supervisor, request.get_data())
        return jsonify(to_json(db.create_supervisor(supervisor))), 201

    @bp.put("/<supervisor_id>")
    @_json_errors
    def update_supervisor(supervisor_id):
        record_id = _parse_uint(supervisor_id)
        supervisor = bind_json(Supervisor, request.get_data())
        supervisor.id = record_id
        return jsonify(to_json(db.update_supervisor(supervisor))), 200

    @bp.delete("/<supervisor_id>")
    @_json_errors
    def delete_supervisor(supervisor_id):
        db.delete_supervisor(_parse_uint(supervisor_id))
        return jsonify({"message": "Supervisor deleted successfully"}), 200

    @bp.get("/<supervisor_id>")
    @_json_errors
    def get_supervisor_by_id(supervisor_id):
        record_id = _parse_int_as_uint(supervisor_id)
        return jsonify(to_json(db.get_supervisor_by_id(record_id))), 200

    return bp