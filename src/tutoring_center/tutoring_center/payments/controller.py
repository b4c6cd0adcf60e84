from __future__ import annotations

from flask import Flask, jsonify

from ..common.http import current_user_id, json_body, optional_arg, required, required_id, role_required
from ..core.enums import Role
from ..core.exceptions import NotFoundError
from ..container import Container


def register(app: Flask, container: Container) -> None:
    service = container.payment_service
    ledger = container.payment_ledger

    @app.route("/api/payments", methods=["POST"], endpoint="record_payment")
    @role_required(Role.ADMIN, Role.SUPER_ADMIN)
    def record_payment():
        data = json_body()
        payment = service.record_payment(
            student_id=required_id(data, "student_id"),
            group_id=required_id(data, "group_id"),
            course_id=required_id(data, "course_id"),
            amount=required(data, "amount"),
            month_for=data.get("month_for"),
        )
        return jsonify(payment.as_dict()), 201

    @app.route("/api/payments/<int:payment_id>", methods=["GET"], endpoint="get_payment")
    @role_required(Role.ADMIN, Role.SUPER_ADMIN, Role.TEACHER)
    def get_payment(payment_id: int):
        return jsonify(service.get_payment(payment_id).as_dict())

    @app.route("/api/payments/<int:payment_id>/confirm", methods=["POST"], endpoint="confirm_payment")
    @role_required(Role.TEACHER)
    def confirm_payment(payment_id: int):
        payment = service.confirm_payment(payment_id=payment_id, teacher_id=current_user_id())
        return jsonify(payment.as_dict())

    @app.route("/api/payments/<int:payment_id>/reject", methods=["POST"], endpoint="reject_payment")
    @role_required(Role.TEACHER)
    def reject_payment(payment_id: int):
        payment = service.reject_payment(payment_id=payment_id, teacher_id=current_user_id())
        return jsonify(payment.as_dict())

    @app.route(
        "/api/groups/<int:group_id>/students/<int:student_id>/payments",
        methods=["GET"],
        endpoint="student_payment_status",
    )
    @role_required(Role.ADMIN, Role.SUPER_ADMIN, Role.TEACHER)
    def student_payment_status(group_id: int, student_id: int):
        group = container.groups_repo.get_by_id(group_id)
        if group is None:
            raise NotFoundError(f"Group {group_id} not found")
        month_for = optional_arg("month_for") or ledger.default_month_for(group_id)
        return jsonify(
            {
                "student_id": student_id,
                "group_id": group_id,
                "month_for": month_for,
                "settled": ledger.is_month_settled(student_id, group_id, month_for),
                "outstanding": str(ledger.outstanding(student_id, group, month_for)),
                "unpaid_months": ledger.unpaid_months(student_id, group_id),
                "payments": [p.as_dict() for p in ledger.payments_for_month(student_id, group_id, month_for)],
            }
        )
