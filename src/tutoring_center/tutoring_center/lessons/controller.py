from __future__ import annotations

from flask import Flask, jsonify

from ..common.datetime_utils import parse_iso_datetime
from ..common.http import current_user_id, json_body, required, role_required
from ..core.enums import Role
from ..container import Container
from .model import Lesson


def _lesson_json(lesson: Lesson) -> dict:
    return {
        "lesson_id": lesson.lesson_id,
        "group_id": lesson.group_id,
        "lesson_number": lesson.lesson_number,
        "lesson_date": lesson.lesson_date.isoformat(),
        "end_date": lesson.end_date.isoformat() if lesson.end_date else None,
        "lesson_name": lesson.lesson_name,
    }


def register(app: Flask, container: Container) -> None:
    service = container.lesson_service

    @app.route("/api/groups/<int:group_id>/lessons", methods=["POST"], endpoint="create_lesson")
    @role_required(Role.TEACHER)
    def create_lesson(group_id: int):
        data = json_body()
        end_date = data.get("end_date")
        lesson = service.create_lesson(
            teacher_id=current_user_id(),
            group_id=group_id,
            lesson_date=parse_iso_datetime(required(data, "lesson_date")),
            end_date=parse_iso_datetime(end_date) if end_date else None,
            lesson_name=data.get("lesson_name"),
            lesson_number=data.get("lesson_number"),
        )
        return jsonify(_lesson_json(lesson)), 201

    @app.route("/api/lessons/<int:lesson_id>", methods=["GET"], endpoint="get_lesson")
    @role_required(Role.ADMIN, Role.SUPER_ADMIN, Role.TEACHER)
    def get_lesson(lesson_id: int):
        return jsonify(_lesson_json(service.get_lesson(lesson_id)))
