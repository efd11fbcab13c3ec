from io import BytesIO

from flask import Blueprint, current_app, jsonify, request, send_file

from ..errors import MockupError, TemplateError, WorkflowError
from ..extensions import sessions
from ..services.export import sanitize_archive_name

bp = Blueprint("templates_api", __name__)


@bp.post("/sessions/<session_id>/template")
def save_template(session_id):
    """Download the session's backgrounds and effect settings as a template zip."""
    session = sessions.get(session_id)
    if not session:
        return jsonify({"error": "Not found"}), 404
    payload = request.get_json(silent=True) or {}
    name = str(request.args.get("name") or payload.get("name") or "").strip() or "My Mockup Template"

    try:
        data = session.save_template(name)
    except WorkflowError as e:
        return jsonify({"error": str(e)}), 400
    except MockupError as e:
        current_app.logger.exception("Failed to create template")
        return jsonify({"error": "Error creating template.", "detail": str(e)}), 400

    return send_file(
        BytesIO(data),
        mimetype="application/zip",
        as_attachment=True,
        download_name=f"{sanitize_archive_name(name)}.zip",
    )


@bp.post("/sessions/<session_id>/template/load")
def load_template(session_id):
    """
    Multipart form-data:
      - file (.zip template)
    Replaces the session's backgrounds, effects and logo.
    """
    session = sessions.get(session_id)
    if not session:
        return jsonify({"error": "Not found"}), 404
    f = request.files.get("file")
    if not f or not f.filename:
        return jsonify({"error": "file is required"}), 400

    try:
        session.load_template(f.read())
    except TemplateError as e:
        current_app.logger.exception("Failed to load template")
        return jsonify({"error": str(e)}), 400
    except MockupError as e:
        current_app.logger.exception("Failed to load template")
        return jsonify({"error": "Error loading template. Please check the file format.", "detail": str(e)}), 400

    sessions.save(session)
    return jsonify(session.to_dict(include_data=False))
