"""
Calculation History - saved calculations with tags and notes, plus CSV export.
All endpoints require login and only ever touch the current user's rows.
"""

import logging
from datetime import datetime

from flask import Blueprint, Response, current_app, jsonify, request
from flask_login import current_user, login_required

from bohocalc import db
from bohocalc.projects.history.core.entries import (
    HistoryValidationError,
    create_history_entry,
    update_history_entry,
)
from bohocalc.projects.history.core.export import build_history_csv, export_filename
from bohocalc.projects.history.models import CalculationHistory
from bohocalc.utils.logging import log_activity, log_project_visit

logger = logging.getLogger(__name__)

history_bp = Blueprint(
    "history",
    __name__,
    url_prefix="/history",
)


# --- Helper Functions ---

def get_entry_or_404(entry_id):
    """
    Get a history entry by ID, ensuring it belongs to the current user.
    Returns None if it doesn't exist or belongs to a different user.
    """
    entry = db.session.get(CalculationHistory, entry_id)
    if entry is None or entry.user_id != current_user.id:
        return None
    return entry


def _page_limit():
    default = current_app.config.get("HISTORY_PAGE_LIMIT", 50)
    limit = request.args.get("limit", default, type=int)
    return max(1, min(limit, default))


@history_bp.route("/api/entries", methods=["GET"])
@login_required
def api_list_entries():
    """Most recent entries first."""
    log_project_visit("history", "Calculation History")
    entries = (
        CalculationHistory.query.filter_by(user_id=current_user.id)
        .order_by(CalculationHistory.created_at.desc(), CalculationHistory.id.desc())
        .limit(_page_limit())
        .all()
    )
    return jsonify({"entries": [e.to_dict() for e in entries]})


@history_bp.route("/api/entries", methods=["POST"])
@login_required
def api_create_entry():
    """Save a calculation. Body: {expression, result, tags?, notes?, context?}."""
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify({"error": "Invalid request body"}), 400

    try:
        entry = create_history_entry(
            current_user.id,
            data.get("expression"),
            data.get("result"),
            tags=data.get("tags"),
            notes=data.get("notes"),
            context=data.get("context"),
        )
        db.session.commit()
    except HistoryValidationError as e:
        db.session.rollback()
        return jsonify({"error": str(e)}), 400
    except Exception:
        db.session.rollback()
        logger.exception("Failed to save calculation")
        return jsonify({"error": "Failed to save calculation"}), 500

    return jsonify(entry.to_dict()), 201


@history_bp.route("/api/entries/<int:entry_id>", methods=["PATCH"])
@login_required
def api_update_entry(entry_id):
    """Edit tags and/or notes of an entry."""
    entry = get_entry_or_404(entry_id)
    if entry is None:
        return jsonify({"error": "Calculation not found"}), 404

    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify({"error": "Invalid request body"}), 400

    try:
        if update_history_entry(entry, data):
            db.session.commit()
    except HistoryValidationError as e:
        db.session.rollback()
        return jsonify({"error": str(e)}), 400

    return jsonify(entry.to_dict())


@history_bp.route("/api/entries/<int:entry_id>", methods=["DELETE"])
@login_required
def api_delete_entry(entry_id):
    """Permanently delete an entry."""
    entry = get_entry_or_404(entry_id)
    if entry is None:
        return jsonify({"error": "Calculation not found"}), 404
    db.session.delete(entry)
    db.session.commit()
    return "", 204


@history_bp.route("/api/export", methods=["GET"])
@login_required
def api_export():
    """Download the listed history as CSV."""
    entries = (
        CalculationHistory.query.filter_by(user_id=current_user.id)
        .order_by(CalculationHistory.created_at.desc(), CalculationHistory.id.desc())
        .limit(_page_limit())
        .all()
    )
    content = build_history_csv(entries, current_user.time_zone)
    filename = export_filename(datetime.utcnow().date())

    log_activity("history", "Export", f"Exported {len(entries)} calculations to {filename}")

    return Response(
        content,
        mimetype="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
