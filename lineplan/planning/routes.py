"""
Route handlers for the planning Blueprint.

Session routes read and change the planning session owned by
PlanningSessionService; engine routes expose the pure scheduling operations
without touching the session.
"""
from flask import current_app, jsonify, request, send_file

from lineplan.planning import planning_bp
from lineplan.planning.export import export_grid
from lineplan.planning.scheduling import (
    SchedulingError,
    ParseError,
    Schedule,
    Timeline,
    ViewLevel,
    WorkingCalendar,
    balance_edit,
    coerce_quantity,
    derive_dependent_schedule,
    distribute_quantity,
    project_for_view,
    resolve_confirmation,
)
from lineplan.datetime_utils import parse_iso_date
from lineplan.logging_config import get_logger

logger = get_logger(__name__)

SESSION_EXTENSION = "lineplan.session"


def get_session():
    """The PlanningSessionService registered on the current app."""
    return current_app.extensions[SESSION_EXTENSION]


def _json_body():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ParseError("Request body must be a JSON object")
    return data


def _parse_int(value, name):
    # Signed; integral floats pass, anything fractional is rejected rather than truncated
    if isinstance(value, bool) or value is None:
        raise ParseError(f"{name} must be an integer")
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if not value.is_integer():
            raise ParseError(f"{name} must be an integer", value=str(value))
        return int(value)
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            raise ParseError(f"{name} must be an integer", value=value)
    raise ParseError(f"{name} must be an integer", value=str(value))


def _parse_confirmation(value):
    if value is None or isinstance(value, bool):
        return value
    raise ParseError("confirm_create_day must be true, false or omitted")


def _state_response(snapshot, status_code=200, **extra):
    payload = {"state": snapshot.to_dict()}
    payload.update(extra)
    return jsonify(payload), status_code


@planning_bp.errorhandler(SchedulingError)
def handle_scheduling_error(exc):
    logger.warning("Planning request rejected", error=exc.message, error_type=type(exc).__name__)
    return jsonify(exc.to_dict()), exc.status_code


# ----------------------------------------------------------------------
# Session state
# ----------------------------------------------------------------------

@planning_bp.route("/state")
def get_state():
    """Return the current planning session."""
    session = get_session()
    return _state_response(session.snapshot, dropped_quantity=session.dropped_quantity())


@planning_bp.route("/reset", methods=["POST"])
def reset_session():
    """Restore the seed session."""
    return _state_response(get_session().reset())


@planning_bp.route("/timeline", methods=["PUT"])
def update_timeline():
    """
    Replace the primary strip and redistribute the primary schedule.

    Body: {"start_date": "YYYY-MM-DD", "duration_days": int, "total_quantity": int}
    """
    timeline = Timeline.from_dict(_json_body())
    session = get_session()
    snapshot = session.set_timeline(timeline)
    return _state_response(snapshot, dropped_quantity=session.dropped_quantity())


@planning_bp.route("/timeline/adjust", methods=["POST"])
def adjust_timeline():
    """
    Move or resize the primary strip by a number of days.

    Body: {"mode": "move" | "resize-start" | "resize-end", "delta_days": int}
    """
    data = _json_body()
    delta_days = _parse_int(data.get("delta_days"), "delta_days")
    session = get_session()
    snapshot = session.adjust_timeline(data.get("mode"), delta_days)
    return _state_response(snapshot, dropped_quantity=session.dropped_quantity())


@planning_bp.route("/calendar", methods=["PUT"])
def update_calendar():
    """Body: {"weekends_excluded": bool, "holidays": ["YYYY-MM-DD", ...]}"""
    calendar = WorkingCalendar.from_dict(_json_body())
    return _state_response(get_session().set_calendar(calendar))


@planning_bp.route("/calendar/holidays", methods=["POST"])
def add_holiday():
    """Body: {"date": "YYYY-MM-DD"}"""
    data = _json_body()
    if not data.get("date"):
        return jsonify({"error": "date is required"}), 400
    return _state_response(get_session().add_holiday(data["date"]))


@planning_bp.route("/calendar/holidays/<holiday>", methods=["DELETE"])
def remove_holiday(holiday):
    return _state_response(get_session().remove_holiday(holiday))


# ----------------------------------------------------------------------
# Processes
# ----------------------------------------------------------------------

@planning_bp.route("/processes/<process_id>/days/<day>", methods=["PUT"])
def edit_day_quantity(process_id, day):
    """
    Set the quantity of one day of a process.

    Body: {"quantity": int, "level": "strip", "confirm_create_day": bool (optional)}

    A dependent edit whose deficit needs a new day answers 409 with
    needs_confirmation until the request is repeated with a decision.
    """
    data = _json_body()
    if "quantity" not in data:
        return jsonify({"error": "quantity is required"}), 400

    result = get_session().edit_quantity(
        process_id,
        day,
        data["quantity"],
        confirm_create_day=_parse_confirmation(data.get("confirm_create_day")),
        level=ViewLevel.parse(data.get("level")),
    )
    status_code = 409 if result.needs_confirmation else 200
    return jsonify(result.to_dict()), status_code


@planning_bp.route("/processes/<process_id>/schedule", methods=["PUT"])
def replace_process_schedule(process_id):
    """Body: {"schedule": [{"date": "YYYY-MM-DD", "quantity": int}, ...]}"""
    data = _json_body()
    schedule = Schedule.from_dicts(data.get("schedule"))
    return _state_response(get_session().replace_schedule(process_id, schedule))


@planning_bp.route("/processes/<process_id>/freeze", methods=["POST"])
def toggle_process_freeze(process_id):
    return _state_response(get_session().toggle_freeze(process_id))


@planning_bp.route("/processes/<process_id>/reset", methods=["POST"])
def reset_process(process_id):
    """Return a process to automatic scheduling."""
    return _state_response(get_session().reset_to_auto(process_id))


@planning_bp.route("/processes/<process_id>/offset", methods=["PUT"])
def change_process_offset(process_id):
    """Body: {"offset_working_days": int}"""
    data = _json_body()
    offset = _parse_int(data.get("offset_working_days"), "offset_working_days")
    return _state_response(get_session().change_offset(process_id, offset))


@planning_bp.route("/processes/<process_id>", methods=["PATCH"])
def update_process(process_id):
    """Body: any of {"name": str, "description": str, "status": "pending" | "in-progress" | "completed"}"""
    data = _json_body()
    snapshot = get_session().update_details(
        process_id,
        name=data.get("name"),
        description=data.get("description"),
        status=data.get("status"),
    )
    return _state_response(snapshot)


# ----------------------------------------------------------------------
# Read-only views
# ----------------------------------------------------------------------

@planning_bp.route("/grid")
def get_grid():
    """Summary grid at a view level (?level=strip|batch|lot)."""
    level = ViewLevel.parse(request.args.get("level"))
    return jsonify(get_session().grid(level).to_dict()), 200


@planning_bp.route("/export")
def export_schedule():
    """Download the summary grid (?level=...&format=xlsx|csv)."""
    level = ViewLevel.parse(request.args.get("level"))
    fmt = request.args.get("format", "xlsx").lower()
    buffer, mimetype = export_grid(get_session().grid(level), fmt)

    filename = f"{current_app.config.get('EXPORT_FILENAME', 'production_schedule')}_{level.value}.{fmt}"
    logger.info("Schedule exported", level=level.value, format=fmt, filename=filename)
    return send_file(buffer, mimetype=mimetype, as_attachment=True, download_name=filename)


# ----------------------------------------------------------------------
# Stateless engine operations
# ----------------------------------------------------------------------

@planning_bp.route("/engine/derive", methods=["POST"])
def engine_derive():
    """Body: {"primary": [...], "offset_working_days": int, "calendar": {...}}"""
    data = _json_body()
    schedule = derive_dependent_schedule(
        Schedule.from_dicts(data.get("primary")),
        _parse_int(data.get("offset_working_days", 0), "offset_working_days"),
        WorkingCalendar.from_dict(data.get("calendar")),
        max_scan_days=current_app.config.get("MAX_CALENDAR_SCAN_DAYS"),
    )
    return jsonify({"schedule": schedule.to_dicts()}), 200


@planning_bp.route("/engine/distribute", methods=["POST"])
def engine_distribute():
    """Body: {"start_date": "YYYY-MM-DD", "duration_days": int, "total_quantity": int, "calendar": {...}}"""
    data = _json_body()
    total = coerce_quantity(data.get("total_quantity", 0))
    schedule = distribute_quantity(
        parse_iso_date(data.get("start_date")),
        _parse_int(data.get("duration_days"), "duration_days"),
        total,
        WorkingCalendar.from_dict(data.get("calendar")),
    )
    dropped = total if total and not len(schedule) else 0
    return jsonify({"schedule": schedule.to_dicts(), "dropped_quantity": dropped}), 200


@planning_bp.route("/engine/edit", methods=["POST"])
def engine_edit():
    """
    Balance one edit without touching the session.

    Body: {"schedule": [...], "date": "YYYY-MM-DD", "quantity": int,
           "target_total": int, "calendar": {...}, "confirm_create_day": bool (optional)}
    """
    data = _json_body()
    outcome = balance_edit(
        Schedule.from_dicts(data.get("schedule")),
        parse_iso_date(data.get("date")),
        coerce_quantity(data.get("quantity")),
        coerce_quantity(data.get("target_total")),
        WorkingCalendar.from_dict(data.get("calendar")),
        max_scan_days=current_app.config.get("MAX_CALENDAR_SCAN_DAYS"),
    )
    decision = _parse_confirmation(data.get("confirm_create_day"))
    if outcome.needs_confirmation and decision is not None:
        outcome = resolve_confirmation(outcome, decision)

    status_code = 409 if outcome.needs_confirmation else 200
    return jsonify({"needs_confirmation": outcome.needs_confirmation, "outcome": outcome.to_dict()}), status_code


@planning_bp.route("/engine/project", methods=["POST"])
def engine_project():
    """Body: {"schedule": [...], "level": "strip" | "batch" | "lot"}"""
    data = _json_body()
    level = ViewLevel.parse(data.get("level"))
    schedule = project_for_view(Schedule.from_dicts(data.get("schedule")), level)
    return jsonify({"level": level.value, "editable": level.editable, "schedule": schedule.to_dicts()}), 200
