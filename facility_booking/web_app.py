from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Callable

from flask import Flask, jsonify, request
from werkzeug.exceptions import HTTPException

from .config import Settings, load_settings
from .errors import (
    AuthorizationError,
    ConflictError,
    InvalidStateError,
    NotFoundError,
    ReservationError,
    ValidationError,
)
from .facilities import YamlFacilityCatalog
from .models import Actor, parse_status
from .service import PageRequest, ReservationFilter, ReservationService
from .time_model import parse_date
from .yaml_store import YamlReservationStore

logger = logging.getLogger(__name__)

ACTOR_HEADER = "X-Actor-Id"

_STATUS_BY_ERROR: list[tuple[type[ReservationError], int]] = [
    (ValidationError, 400),
    (AuthorizationError, 403),
    (NotFoundError, 404),
    (ConflictError, 409),
    (InvalidStateError, 409),
]


def create_app(
    settings: Settings | None = None,
    now_provider: Callable[[], datetime] | None = None,
    service: ReservationService | None = None,
) -> Flask:
    app = Flask(__name__)
    settings = settings or load_settings()
    clock: Callable[[], datetime] = now_provider or datetime.now
    if service is None:
        service = ReservationService(
            facilities=YamlFacilityCatalog(settings.facilities_file),
            store=YamlReservationStore(settings.data_dir, clock=clock),
            policy=settings.booking_policy(),
            clock=clock,
        )
    app.config["RESERVATION_SERVICE"] = service

    def _current_actor() -> Actor:
        actor_id = str(request.headers.get(ACTOR_HEADER, "")).strip()
        if not actor_id:
            raise AuthorizationError(f"{ACTOR_HEADER} header is required")
        return Actor(actor_id=actor_id, is_admin=actor_id in settings.admin_ids)

    def _json_body() -> dict[str, Any]:
        payload = request.get_json(silent=True)
        return payload if isinstance(payload, dict) else {}

    @app.errorhandler(ReservationError)
    def handle_reservation_error(error: ReservationError) -> Any:
        for error_type, status_code in _STATUS_BY_ERROR:
            if isinstance(error, error_type):
                return jsonify({"ok": False, "message": error.message}), status_code
        return jsonify({"ok": False, "message": error.message}), 400

    @app.errorhandler(Exception)
    def handle_unexpected_error(error: Exception) -> Any:
        if isinstance(error, HTTPException):
            return error
        logger.exception("unhandled error while serving %s %s", request.method, request.path)
        return jsonify({"ok": False, "message": "unexpected error while processing the reservation"}), 500

    @app.after_request
    def add_cors_headers(response: Any) -> Any:
        response.headers["Access-Control-Allow-Origin"] = "*"
        response.headers["Access-Control-Allow-Methods"] = "GET,POST,PATCH,DELETE,OPTIONS"
        response.headers["Access-Control-Allow-Headers"] = f"Content-Type,{ACTOR_HEADER}"
        return response

    @app.get("/api/facilities/<facility_id>/availability")
    def get_availability(facility_id: str) -> Any:
        date_text = str(request.args.get("date", "")).strip()
        if not date_text:
            raise ValidationError("date is required")
        availability = service.get_availability(facility_id, date_text)
        return jsonify({"ok": True, "availability": availability.to_dict()})

    @app.get("/api/reservations")
    def list_reservations() -> Any:
        actor = _current_actor()
        args = request.args
        requester_id = args.get("requester_id") if actor.is_admin else actor.actor_id
        criteria = ReservationFilter(
            requester_id=requester_id,
            status=parse_status(args["status"]) if args.get("status") else None,
            date_from=parse_date(args["date_from"]) if args.get("date_from") else None,
            date_to=parse_date(args["date_to"]) if args.get("date_to") else None,
            facility_id=args.get("facility_id") or None,
            upcoming=str(args.get("upcoming", "")).lower() == "true",
        )
        page = PageRequest(page=_int_arg("page", 1), limit=_int_arg("limit", 20))
        result = service.list_reservations(criteria, page)
        return jsonify(
            {
                "ok": True,
                "reservations": [row.to_dict() for row in result.items],
                "pagination": result.pagination(),
            }
        )

    @app.post("/api/reservations")
    def create_reservation() -> Any:
        actor = _current_actor()
        payload = _json_body()
        missing = [name for name in ("facility_id", "date", "start", "end") if payload.get(name) in (None, "")]
        if missing:
            raise ValidationError(f"missing fields: {', '.join(missing)}")

        created = service.create_reservation(
            facility_id=str(payload["facility_id"]),
            target_date=str(payload["date"]),
            start=payload["start"],
            end=payload["end"],
            requester_id=actor.actor_id,
            group_id=payload.get("group_id"),
            notes=payload.get("notes"),
        )
        return jsonify({"ok": True, "reservation": created.to_dict()}), 201

    @app.get("/api/reservations/<reservation_id>")
    def get_reservation(reservation_id: str) -> Any:
        record = service.get_reservation(reservation_id, _current_actor())
        return jsonify({"ok": True, "reservation": record.to_dict()})

    @app.patch("/api/reservations/<reservation_id>")
    def update_reservation(reservation_id: str) -> Any:
        actor = _current_actor()
        payload = _json_body()
        fields = {name: payload[name] for name in ("notes", "group_id") if name in payload}
        updated = service.update_reservation(reservation_id, actor, **fields)
        return jsonify({"ok": True, "reservation": updated.to_dict()})

    @app.post("/api/reservations/<reservation_id>/confirm")
    def confirm_reservation(reservation_id: str) -> Any:
        confirmed = service.confirm_reservation(reservation_id, _current_actor())
        return jsonify({"ok": True, "reservation": confirmed.to_dict()})

    @app.post("/api/reservations/<reservation_id>/cancel")
    def cancel_reservation(reservation_id: str) -> Any:
        actor = _current_actor()
        reason = _json_body().get("reason")
        cancelled = service.cancel_reservation(reservation_id, actor, reason=str(reason) if reason else None)
        return jsonify({"ok": True, "reservation": cancelled.to_dict()})

    @app.delete("/api/reservations/<reservation_id>")
    def delete_reservation(reservation_id: str) -> Any:
        service.delete_reservation(reservation_id, _current_actor())
        return jsonify({"ok": True, "reservation_id": reservation_id})

    return app


def _int_arg(name: str, default: int) -> int:
    raw = request.args.get(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError as error:
        raise ValidationError(f"{name} must be an integer") from error


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    app = create_app()
    app.run(host="127.0.0.1", port=5000, debug=False)
