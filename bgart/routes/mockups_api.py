from io import BytesIO

from flask import Blueprint, current_app, jsonify, request, send_file

from ..errors import MockupError, WorkflowError
from ..extensions import sessions
from ..services.export import build_product_zip, build_results_zip, sanitize_archive_name, strip_extension
from ..utils.images import data_url_to_bytes

bp = Blueprint("mockups_api", __name__)


def _zip_response(data: bytes, name: str):
    return send_file(
        BytesIO(data),
        mimetype="application/zip",
        as_attachment=True,
        download_name=f"{sanitize_archive_name(name)}.zip",
    )


@bp.get("/sessions/<session_id>/preview")
def preview(session_id):
    session = sessions.get(session_id)
    if not session:
        return jsonify({"error": "Not found"}), 404
    try:
        data_url = session.render_preview(
            request.args.get("background_id"),
            max_size=tuple(current_app.config["PREVIEW_MAX_SIZE"]),
        )
    except MockupError as e:
        return jsonify({"error": str(e)}), 400
    return send_file(BytesIO(data_url_to_bytes(data_url)), mimetype="image/jpeg")


@bp.post("/sessions/<session_id>/generate")
def generate_mockups(session_id):
    """
    Renders every planned job in order. A failing job aborts the batch and
    leaves the previous results in place.
    """
    session = sessions.get(session_id)
    if not session:
        return jsonify({"error": "Not found"}), 404

    def _progress(count, total):
        current_app.logger.debug("Session %s: generating (%d/%d)", session_id, count, total)

    try:
        results = session.generate(on_progress=_progress, quality=current_app.config["JPEG_QUALITY"])
    except MockupError as e:
        current_app.logger.exception("Mockup generation failed for session %s", session_id)
        return jsonify({"error": str(e)}), 400

    sessions.save(session)
    return jsonify({"results": [r.to_dict(include_data=False) for r in results], "count": len(results)})


@bp.get("/sessions/<session_id>/results")
def list_results(session_id):
    session = sessions.get(session_id)
    if not session:
        return jsonify({"error": "Not found"}), 404
    include_data = request.args.get("include_data", "").strip().lower() in {"1", "true", "yes", "on"}
    return jsonify([r.to_dict(include_data=include_data) for r in session.results])


@bp.get("/sessions/<session_id>/results/download")
def download_all(session_id):
    session = sessions.get(session_id)
    if not session:
        return jsonify({"error": "Not found"}), 404
    if not session.results:
        return jsonify({"error": "No results to download"}), 400
    name = (request.args.get("name") or "").strip() or "mockups"
    return _zip_response(build_results_zip(session.results), name)


@bp.get("/sessions/<session_id>/results/<product_id>/download")
def download_product(session_id, product_id):
    session = sessions.get(session_id)
    if not session:
        return jsonify({"error": "Not found"}), 404
    try:
        data = build_product_zip(session.results, product_id)
    except WorkflowError as e:
        return jsonify({"error": str(e)}), 404
    product_name = next(r.product_name for r in session.results if r.product_id == product_id)
    name = (request.args.get("name") or "").strip() or f"mockups_{strip_extension(product_name)}"
    return _zip_response(data, name)
