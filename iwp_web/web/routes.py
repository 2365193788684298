## routes.py
from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Optional

from flask import Blueprint, abort, current_app, jsonify, request, send_file

from iwp_web.adapters.log_sinks import MemorySink
from iwp_web.config.ini_config import AppSettings
from iwp_web.domain.errors import AlreadyRunning, ValidationError
from iwp_web.domain.models import Failure, Finished, JobResult, Outcome, StillRunning, Success


def _safe_int(raw: str | None) -> int | None:
    raw = (raw or "").strip()
    return int(raw) if raw.isdigit() else None


def _link_for(p: Path) -> str:
    return f"/download/{p.name}"


def _outcome_json(outcome: Optional[Outcome]) -> Optional[Dict[str, Any]]:
    if isinstance(outcome, Success):
        return {"status": "success", "signal": outcome.signal, "progress": outcome.progress}
    if isinstance(outcome, Failure):
        return {"status": "failure", "reason_code": outcome.reason_code}
    return None


def _result_json(result: Optional[JobResult]) -> Optional[Dict[str, Any]]:
    if result is None:
        return None
    return {
        "job_id": result.job_id,
        "exit_code": result.exit_code,
        "args": result.args,
        "duration_seconds": result.duration_seconds,
        "output_files": [str(p) for p in result.output_files],
        "downloads": [_link_for(p) for p in result.output_files],
        "stdout_tail": "\n".join(result.stdout.splitlines()[-60:]),
        "stderr_tail": "\n".join(result.stderr.splitlines()[-60:]),
    }


def _field(data: Dict[str, Any], name: str) -> str:
    return str(data.get(name) or "").strip()


def create_blueprint(packaging_service, memory_sink: MemorySink, settings: AppSettings) -> Blueprint:
    bp = Blueprint("web", __name__)

    @bp.get("/")
    def index():
        return jsonify(
            busy=packaging_service.busy,
            progress=packaging_service.progress,
            poll_interval_ms=settings.poll_interval_ms,
            tool_path=str(settings.tool_path),
            default_output_folder=str(settings.default_output_folder or ""),
            last_result=_result_json(packaging_service.last_result),
            last_outcome=_outcome_json(packaging_service.last_outcome),
        )

    @bp.post("/jobs")
    def start_job():
        data = request.get_json(silent=True)
        if data is None:
            data = request.form.to_dict()
        if not isinstance(data, dict):
            data = {}

        output_raw = _field(data, "output_folder") or str(settings.default_output_folder or "")

        try:
            packaging_request = packaging_service.validate(
                _field(data, "source_folder"),
                _field(data, "setup_file"),
                output_raw,
                detected_setup=_field(data, "detected_setup") or None,
            )
        except ValidationError as e:
            current_app.logger.info("Validation failed: %s (%s)", e.reason.value, e.message)
            return jsonify(error=e.reason.value, message=e.message), 400

        try:
            handle = packaging_service.start(packaging_request)
        except AlreadyRunning as e:
            return jsonify(error="AlreadyRunning", message=str(e)), 409

        current_app.logger.info("Job %s started: %s", handle.job_id, handle.args)
        return jsonify(
            job_id=handle.job_id,
            started_at=handle.started_at.isoformat(timespec="seconds"),
            args=handle.args,
            poll_interval_ms=settings.poll_interval_ms,
        ), 202

    @bp.get("/jobs/current")
    def poll_job():
        outcome = packaging_service.tick()

        if isinstance(outcome, StillRunning):
            return jsonify(state="running", progress=outcome.progress)

        if isinstance(outcome, Finished):
            verdict = _outcome_json(outcome.outcome)
            current_app.logger.info(
                "Job %s finished status=%s exit=%s",
                outcome.result.job_id,
                verdict["status"] if verdict else None,
                outcome.result.exit_code,
            )
            progress = outcome.outcome.progress if isinstance(outcome.outcome, Success) else packaging_service.progress
            return jsonify(
                state="finished",
                progress=progress,
                outcome=verdict,
                result=_result_json(outcome.result),
            )

        return jsonify(state="idle", progress=packaging_service.progress)

    @bp.post("/jobs/current/cancel")
    def cancel_job():
        if not packaging_service.cancel():
            return jsonify(error="NoActiveJob", message="No packaging job is running."), 404
        return jsonify(cancelled=True)

    @bp.get("/logs")
    def logs():
        since = _safe_int(request.args.get("since")) or 0
        events = [
            {
                "seq": seq,
                "level": e.level.value,
                "message": e.message,
                "timestamp": e.timestamp.isoformat(timespec="seconds"),
            }
            for seq, e in memory_sink.events_since(since)
        ]
        return jsonify(events=events, next=memory_sink.next_seq)

    @bp.get("/download/<filename>")
    def download(filename: str):
        result = packaging_service.last_result
        if result is None or not result.output_files:
            abort(404)

        match = next((p for p in result.output_files if p.name == filename), None)
        if match is None:
            abort(404)

        full = match.resolve()
        if full.parent != match.parent.resolve():
            abort(403)
        if not full.exists() or not full.is_file():
            abort(404)

        return send_file(full, as_attachment=True)

    return bp
