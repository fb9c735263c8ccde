#!/usr/bin/env python3
"""
TaskFlow Server
---------------
Exposes the job tracker as a JSON API backed by the local SQLite store.
Each route maps to one controller command; the reply is the command's
Outcome (fresh render, optional alert, open form).

Usage:
    python taskflow_server.py
    python taskflow_server.py --port 3000 --db ~/taskflow.db

API:
    GET    /api/view                         → current render
    POST   /api/view        { view }         → switch view
    POST   /api/search      { query }        → set search filter
    GET    /api/form        ?id=<job id>     → open create/edit form
    DELETE /api/form                         → close form
    POST   /api/jobs        form fields      → create (201) or update (200) a job
    GET    /api/jobs                         → all stored jobs (unfiltered)
    GET    /api/jobs/<id>                    → one stored job
    DELETE /api/jobs/<id>   ?confirm=1       → delete a job
    POST   /api/jobs/<id>/drag               → start dragging a card
    POST   /api/columns/<status>/dragover    → hover a column
    POST   /api/columns/<status>/dragleave   → leave a column
    POST   /api/columns/<status>/drop { id? } → drop a card into a column
    GET    /api/stats                        → summary statistics
    GET    /health
"""

import argparse
import logging
import sys
from pathlib import Path

from flask import Flask, abort, jsonify, request

from pkg.taskflow.config import Config
from pkg.taskflow.controller import (
    CloseForm,
    Controller,
    Delete,
    DragLeave,
    DragOver,
    DragStart,
    Drop,
    JobNotFound,
    Navigate,
    OpenForm,
    Outcome,
    Search,
    SubmitForm,
)
from pkg.taskflow.render import summarize
from pkg.taskflow.store import JobStore, StorageReadError, StorageUnavailable

logger = logging.getLogger("taskflow")

TRUTHY = {"1", "true", "yes", "on"}


def create_app(controller: Controller) -> Flask:
    """Build the Flask app around an already started controller."""
    app = Flask(__name__)

    @app.errorhandler(400)
    def bad_request(e):
        return jsonify({"error": e.description}), 400

    def _body() -> dict:
        data = request.get_json(force=True, silent=True)
        if data is None:
            return request.form.to_dict()
        if not isinstance(data, dict):
            abort(400, description="JSON object expected")
        return data

    def _reply(outcome: Outcome, status: int = 200):
        if outcome.alert:
            return jsonify(outcome.to_dict()), 503
        return jsonify(outcome.to_dict()), status

    def _run(command, status: int = 200):
        try:
            outcome = controller.dispatch(command)
        except JobNotFound as e:
            return jsonify({"error": f"Job not found: {e.args[0]}"}), 404
        except ValueError as e:
            return jsonify({"error": str(e)}), 400
        return _reply(outcome, status)

    # ── Views ─────────────────────────────────────────────────────────────

    @app.route("/api/view", methods=["GET"])
    def api_view_get():
        return _reply(controller.snapshot())

    @app.route("/api/view", methods=["POST"])
    def api_view_set():
        view = str(_body().get("view", "")).strip()
        if not view:
            return jsonify({"error": "view is required"}), 400
        return _run(Navigate(view))

    @app.route("/api/search", methods=["POST"])
    def api_search():
        return _run(Search(str(_body().get("query", ""))))

    # ── Form ──────────────────────────────────────────────────────────────

    @app.route("/api/form", methods=["GET"])
    def api_form_open():
        return _run(OpenForm(request.args.get("id") or None))

    @app.route("/api/form", methods=["DELETE"])
    def api_form_close():
        return _run(CloseForm())

    # ── Jobs ──────────────────────────────────────────────────────────────

    @app.route("/api/jobs", methods=["POST"])
    def api_submit_job():
        fields = _body()
        job_id = str(fields.get("id") or "").strip()
        status = 200 if job_id and controller.state.find(job_id) else 201
        return _run(SubmitForm(fields), status)

    @app.route("/api/jobs", methods=["GET"])
    def api_list_jobs():
        try:
            jobs = controller.store.get_all()
        except StorageReadError as e:
            return jsonify({"error": str(e)}), 503
        return jsonify({"jobs": [j.to_dict() for j in jobs], "count": len(jobs)})

    @app.route("/api/jobs/<job_id>", methods=["GET"])
    def api_get_job(job_id):
        try:
            job = controller.store.get(job_id)
        except StorageReadError as e:
            return jsonify({"error": str(e)}), 503
        if not job:
            return jsonify({"error": "Job not found"}), 404
        return jsonify({"job": job.to_dict()})

    @app.route("/api/jobs/<job_id>", methods=["DELETE"])
    def api_delete_job(job_id):
        confirmed = request.args.get("confirm", "").strip().lower() in TRUTHY
        return _run(Delete(job_id, confirmed=confirmed))

    # ── Drag & drop ───────────────────────────────────────────────────────

    @app.route("/api/jobs/<job_id>/drag", methods=["POST"])
    def api_drag_start(job_id):
        return _run(DragStart(job_id))

    @app.route("/api/columns/<status>/dragover", methods=["POST"])
    def api_drag_over(status):
        return _run(DragOver(status))

    @app.route("/api/columns/<status>/dragleave", methods=["POST"])
    def api_drag_leave(status):
        return _run(DragLeave())

    @app.route("/api/columns/<status>/drop", methods=["POST"])
    def api_drop(status):
        job_id = _body().get("id") or None
        return _run(Drop(status, job_id=job_id))

    # ── Misc ──────────────────────────────────────────────────────────────

    @app.route("/api/stats")
    def api_stats():
        return jsonify(summarize(controller.state.jobs))

    @app.route("/health")
    def health():
        return jsonify({"status": "ok", "db": controller.store.db_path,
                        "jobs": len(controller.state.jobs)})

    return app


# ── Main ─────────────────────────────────────────────────────────────────────

def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="TaskFlow Server")
    parser.add_argument("--config", help="Path to taskflow.yaml (overrides TASKFLOW_CONFIG)")
    parser.add_argument("--host", help="Bind address")
    parser.add_argument("--port", type=int)
    parser.add_argument("--db", help="Path to taskflow.db (overrides TASKFLOW_DB env var)")
    args = parser.parse_args(argv)

    cfg = Config.load(args.config)
    if args.db:
        cfg.db_path = str(Path(args.db).expanduser())
    host = args.host or cfg.host
    port = args.port or cfg.port

    logging.basicConfig(
        level=getattr(logging, str(cfg.log_level).upper(), logging.INFO),
        format="%(asctime)s [taskflow] %(levelname)s: %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )

    controller = Controller(JobStore(cfg.db_path), dashboard_limit=cfg.dashboard_limit)
    try:
        controller.start()
    except StorageUnavailable as e:
        logger.critical(f"Cannot start: {e}")
        return 1

    logger.info(f"Serving on http://{host}:{port} (db: {cfg.db_path})")
    # One request at a time: each command finishes its store round-trip first
    create_app(controller).run(host=host, port=port, debug=False, threaded=False)
    return 0


if __name__ == "__main__":
    sys.exit(main())
