from __future__ import annotations

from flask import Flask, jsonify

from ..common.http import json_body, required_id, role_required
from ..core.enums import Role
from ..container import Container
from ..groups.model import Group


def _group_json(group: Group, roster: list[int]) -> dict:
    return {
        "group_id": group.group_id,
        "name": group.name,
        "course_id": group.course_id,
        "teacher_id": group.teacher_id,
        "price": str(group.price),
        "status": group.status.value,
        "days_of_week": list(group.days_of_week),
        "students": roster,
    }


def register(app: Flask, container: Container) -> None:
    service = container.enrollment_service

    def _respond(group: Group, status: int = 200):
        return jsonify(_group_json(group, service.roster(group.group_id))), status

    @app.route("/api/groups/<int:group_id>/students", methods=["GET"], endpoint="group_roster")
    @role_required(Role.ADMIN, Role.SUPER_ADMIN, Role.TEACHER)
    def group_roster(group_id: int):
        return jsonify({"group_id": group_id, "students": service.roster(group_id)})

    @app.route("/api/groups/<int:group_id>/students", methods=["POST"], endpoint="add_student")
    @role_required(Role.ADMIN, Role.SUPER_ADMIN)
    def add_student(group_id: int):
        data = json_body()
        return _respond(service.add_student(group_id, required_id(data, "student_id")), 201)

    @app.route("/api/groups/<int:group_id>/students/<int:student_id>", methods=["DELETE"], endpoint="remove_student")
    @role_required(Role.ADMIN, Role.SUPER_ADMIN)
    def remove_student(group_id: int, student_id: int):
        return _respond(service.remove_student(group_id, student_id))

    @app.route(
        "/api/groups/<int:group_id>/students/<int:student_id>/restore",
        methods=["POST"],
        endpoint="restore_student",
    )
    @role_required(Role.ADMIN, Role.SUPER_ADMIN)
    def restore_student(group_id: int, student_id: int):
        return _respond(service.restore_student(group_id, student_id))

    @app.route("/api/groups/transfer", methods=["POST"], endpoint="transfer_student")
    @role_required(Role.ADMIN, Role.SUPER_ADMIN)
    def transfer_student():
        data = json_body()
        group = service.transfer_student(
            required_id(data, "from_group_id"),
            required_id(data, "to_group_id"),
            required_id(data, "student_id"),
        )
        return _respond(group)
