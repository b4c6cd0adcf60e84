from __future__ import annotations

from flask import Flask, jsonify, request

from ..common.datetime_utils import parse_iso_date
from ..common.http import current_user_id, json_body, optional_arg, required, role_required
from ..core.enums import Role
from ..core.exceptions import ValidationError
from ..container import Container
from .model import AttendanceFilter


def _entries(data: dict, key: str) -> list:
    entries = required(data, key)
    if not isinstance(entries, list):
        raise ValidationError(f"{key} must be a list")
    return entries


def register(app: Flask, container: Container) -> None:
    service = container.attendance_service

    @app.route("/api/lessons/<int:lesson_id>/attendance", methods=["POST"], endpoint="mark_attendance")
    @role_required(Role.TEACHER)
    def mark_attendance(lesson_id: int):
        data = json_body()
        outcomes = service.mark_attendance(
            teacher_id=current_user_id(),
            lesson_id=lesson_id,
            entries=_entries(data, "entries"),
        )
        return jsonify({"results": [o.as_dict() for o in outcomes]})

    @app.route("/api/lessons/<int:lesson_id>/attendance", methods=["PATCH"], endpoint="update_lesson_attendance")
    @role_required(Role.TEACHER)
    def update_lesson_attendance(lesson_id: int):
        data = json_body()
        outcomes = service.update_attendance_by_lesson(
            teacher_id=current_user_id(),
            lesson_id=lesson_id,
            updates=_entries(data, "updates"),
        )
        return jsonify({"results": [o.as_dict() for o in outcomes]})

    @app.route("/api/attendance/<int:attendance_id>", methods=["PATCH"], endpoint="update_attendance")
    @role_required(Role.TEACHER)
    def update_attendance(attendance_id: int):
        data = json_body()
        record = service.update_attendance(
            teacher_id=current_user_id(),
            attendance_id=attendance_id,
            status=required(data, "status"),
        )
        return jsonify(
            {"attendance_id": record.attendance_id, "student_id": record.student_id, "status": record.status.value}
        )

    @app.route("/api/attendance", methods=["GET"], endpoint="list_attendance")
    @role_required(Role.ADMIN, Role.SUPER_ADMIN, Role.TEACHER)
    def list_attendance():
        group_id = request.args.get("group_id", type=int)
        lesson_id = request.args.get("lesson_id", type=int)
        date_from = optional_arg("date_from")
        date_to = optional_arg("date_to")
        criteria = AttendanceFilter(
            group_id=group_id,
            lesson_id=lesson_id,
            date_from=parse_iso_date(date_from) if date_from else None,
            date_to=parse_iso_date(date_to) if date_to else None,
            student_name=optional_arg("student_name"),
        )
        rows = service.list_attendance(criteria)
        return jsonify({"items": [r.as_dict() for r in rows]})
