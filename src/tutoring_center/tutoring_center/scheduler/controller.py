from __future__ import annotations

from flask import Flask, jsonify

from ..common.http import role_required
from ..core.enums import Role
from ..container import Container


def register(app: Flask, container: Container) -> None:
    scheduler = container.scheduler_service

    @app.route("/api/admin/jobs", methods=["GET"], endpoint="list_jobs")
    @role_required(Role.SUPER_ADMIN)
    def list_jobs():
        return jsonify({"running": scheduler.running, "jobs": scheduler.job_ids})

    @app.route("/api/admin/jobs/<job_id>/run", methods=["POST"], endpoint="run_job")
    @role_required(Role.SUPER_ADMIN)
    def run_job(job_id: str):
        report = scheduler.run_now(job_id)
        return jsonify(report.as_dict())
