from __future__ import annotations

from dataclasses import asdict
from datetime import date, datetime
from enum import Enum
from functools import wraps
from typing import Any

from flask import Flask, jsonify, request, session

from ..common.datetime_utils import parse_iso_date, parse_optional_iso_date
from ..core.enums import Role
from ..core.exceptions import AuthorizationError, CapacityExceededError, NotFoundError, ValidationError
from ..container import Container
from .service import UNSET


def _jsonable(value: Any) -> Any:
    if isinstance(value, dict):
        return {k: _jsonable(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_jsonable(v) for v in value]
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    return value


def _serialize(obj: Any) -> dict:
    return _jsonable(asdict(obj))


def _error(message: str, status: int, **extra):
    return jsonify({"error": message, **extra}), status


def register(app: Flask, container: Container) -> None:
    def login_required(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            if "user_id" not in session:
                return _error("Authentication required", 401)
            return view(*args, **kwargs)

        return wrapper

    def domain_errors(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            try:
                return view(*args, **kwargs)
            except CapacityExceededError as e:
                return _error(str(e), 409, currentTotal=e.current_total, requested=e.requested)
            except NotFoundError as e:
                return _error(str(e), 404)
            except AuthorizationError as e:
                return _error(str(e), 403)
            except ValidationError as e:
                return _error(str(e), 400)

        return wrapper

    def _current_role() -> Role:
        try:
            return Role(session.get("role"))
        except ValueError:
            return Role.USER

    def _payload() -> dict:
        return request.get_json(silent=True) or {}

    def _parse_date_field(data: dict, key: str, *, required: bool = False):
        try:
            if required:
                return parse_iso_date(str(data.get(key) or ""))
            return parse_optional_iso_date(data.get(key))
        except ValueError:
            raise ValidationError(f"{key} must be a date (YYYY-MM-DD)")

    def _int_field(data: dict, key: str) -> int:
        try:
            return int(data.get(key) or 0)
        except (TypeError, ValueError):
            raise ValidationError(f"{key} must be an integer")

    def _int_arg(name: str):
        v = request.args.get(name)
        return int(v) if v and v.isdigit() else None

    @app.route("/api/allocations", methods=["GET"], endpoint="allocations_list")
    @login_required
    def allocations_list():
        rows = container.allocation_service.list_allocations(
            employee_id=_int_arg("employee_id"),
            project_id=_int_arg("project_id"),
        )
        return jsonify([_serialize(a) for a in rows])

    @app.route("/api/allocations", methods=["POST"], endpoint="allocations_create")
    @login_required
    @domain_errors
    def allocations_create():
        data = _payload()
        allocation = container.allocation_service.create_allocation(
            current_role=_current_role(),
            mode=container.settings_service.get_allocation_mode(),
            employee_id=_int_field(data, "employee_id"),
            project_id=_int_field(data, "project_id"),
            start_date=_parse_date_field(data, "start_date", required=True),
            end_date=_parse_date_field(data, "end_date"),
            allocated_hours=data.get("allocated_hours"),
            allocated_percentage=data.get("allocated_percentage"),
            changed_by=int(session["user_id"]),
            comment=data.get("comment"),
        )
        return jsonify(_serialize(allocation)), 201

    @app.route("/api/allocations/<int:allocation_id>", methods=["GET"], endpoint="allocations_get")
    @login_required
    @domain_errors
    def allocations_get(allocation_id: int):
        return jsonify(_serialize(container.allocation_service.get_allocation(allocation_id)))

    @app.route("/api/allocations/<int:allocation_id>", methods=["PATCH"], endpoint="allocations_update")
    @login_required
    @domain_errors
    def allocations_update(allocation_id: int):
        data = _payload()
        end_date = _parse_date_field(data, "end_date") if "end_date" in data else UNSET
        allocation = container.allocation_service.update_allocation(
            current_role=_current_role(),
            mode=container.settings_service.get_allocation_mode(),
            allocation_id=allocation_id,
            allocated_hours=data.get("allocated_hours"),
            allocated_percentage=data.get("allocated_percentage"),
            end_date=end_date,
            changed_by=int(session["user_id"]),
            comment=data.get("comment"),
        )
        return jsonify(_serialize(allocation))

    @app.route("/api/allocations/<int:allocation_id>", methods=["DELETE"], endpoint="allocations_delete")
    @login_required
    @domain_errors
    def allocations_delete(allocation_id: int):
        container.allocation_service.delete_allocation(
            current_role=_current_role(),
            allocation_id=allocation_id,
            changed_by=int(session["user_id"]),
            comment=_payload().get("comment"),
        )
        return "", 204

    @app.route("/api/allocations/history", methods=["GET"], endpoint="allocations_history")
    @login_required
    def allocations_history():
        rows = container.allocation_service.list_history(
            employee_id=_int_arg("employee_id"),
            project_id=_int_arg("project_id"),
        )
        return jsonify([_serialize(h) for h in rows])

    @app.route(
        "/api/allocations/history/<int:history_id>/revert", methods=["POST"], endpoint="allocations_history_revert"
    )
    @login_required
    @domain_errors
    def allocations_history_revert(history_id: int):
        allocation = container.allocation_service.revert_history_entry(
            current_role=_current_role(),
            mode=container.settings_service.get_allocation_mode(),
            history_id=history_id,
            changed_by=int(session["user_id"]),
            comment=_payload().get("comment"),
        )
        return jsonify(_serialize(allocation))

    @app.route("/api/employees/<int:employee_id>/capacity", methods=["GET"], endpoint="employee_capacity")
    @login_required
    @domain_errors
    def employee_capacity(employee_id: int):
        args = request.args.to_dict()
        start = _parse_date_field(args, "start_date") or date.today()
        summary = container.allocation_service.capacity_summary(
            employee_id=employee_id,
            start_date=start,
            end_date=_parse_date_field(args, "end_date"),
        )
        return jsonify(_serialize(summary))

    @app.route("/api/settings/allocation-mode", methods=["GET"], endpoint="settings_allocation_mode")
    @login_required
    def settings_allocation_mode():
        return jsonify({"mode": container.settings_service.get_allocation_mode().value})

    @app.route("/api/settings/allocation-mode", methods=["PUT"], endpoint="settings_allocation_mode_update")
    @login_required
    @domain_errors
    def settings_allocation_mode_update():
        mode = container.settings_service.set_allocation_mode(
            current_role=_current_role(),
            mode=str(_payload().get("mode") or ""),
        )
        return jsonify({"mode": mode.value})
