from pathlib import Path

from flask import Blueprint, current_app, jsonify, request

from ..errors import GenerationError, MockupError
from ..extensions import sessions
from ..models import ImageItem, Placement
from ..services.gemini_svc import generate_background_image
from ..utils.images import image_bytes_to_data_url

bp = Blueprint("sessions_api", __name__)

KIND_BY_COLLECTION = {"backgrounds": "background", "products": "product"}


def _summary(session):
    return session.to_dict(include_data=False)


def _uploaded_items(files) -> list[ImageItem]:
    """Turn multipart uploads into ImageItems; rejects unknown extensions."""
    allowed = current_app.config["ALLOWED_EXTS"]
    items = []
    for f in files:
        if not f or not f.filename:
            continue
        name = Path(f.filename).name
        ext = Path(name).suffix.lower()
        if ext not in allowed:
            raise ValueError(f"{name} must be one of {sorted(allowed)}")
        items.append(ImageItem.create(name, image_bytes_to_data_url(f.read(), name)))
    return items


# -----------------------------
# Sessions
# -----------------------------
@bp.post("/sessions")
def create_session():
    session = sessions.create()
    return jsonify(_summary(session)), 201


@bp.get("/sessions/<session_id>")
def get_session(session_id):
    session = sessions.get(session_id)
    if not session:
        return jsonify({"error": "Not found"}), 404
    return jsonify(_summary(session))


@bp.delete("/sessions/<session_id>")
def reset_session(session_id):
    session = sessions.get(session_id)
    if not session:
        return jsonify({"error": "Not found"}), 404
    session.reset()
    sessions.save(session)
    return jsonify(_summary(session))


# -----------------------------
# Backgrounds & products
# -----------------------------
@bp.post("/sessions/<session_id>/<collection>")
def upload_images(session_id, collection):
    """
    Multipart form-data:
      - files (one or more image files)
    """
    kind = KIND_BY_COLLECTION.get(collection)
    if not kind:
        return jsonify({"error": "Not found"}), 404
    session = sessions.get(session_id)
    if not session:
        return jsonify({"error": "Not found"}), 404

    files = request.files.getlist("files")
    if not files:
        return jsonify({"error": "No files uploaded"}), 400
    try:
        items = _uploaded_items(files)
    except (ValueError, MockupError) as e:
        return jsonify({"error": str(e)}), 400

    session.add_images(items, kind)
    sessions.save(session)
    return jsonify([i.to_dict(include_data=False) for i in items]), 201


@bp.post("/sessions/<session_id>/backgrounds/generate")
def generate_background(session_id):
    session = sessions.get(session_id)
    if not session:
        return jsonify({"error": "Not found"}), 404
    prompt = ((request.json or {}).get("prompt") or "").strip()
    if not prompt:
        return jsonify({"error": "Prompt cannot be empty."}), 400

    try:
        item = generate_background_image(prompt, model_override=current_app.config.get("GEMINI_IMAGE_MODEL"))
    except GenerationError as e:
        current_app.logger.exception("AI background generation failed")
        return jsonify({"error": f"Failed to generate image: {e}"}), 502

    session.add_background(item)
    sessions.save(session)
    return jsonify(item.to_dict(include_data=False)), 201


@bp.delete("/sessions/<session_id>/<collection>/<item_id>")
def delete_image(session_id, collection, item_id):
    kind = KIND_BY_COLLECTION.get(collection)
    if not kind:
        return jsonify({"error": "Not found"}), 404
    session = sessions.get(session_id)
    if not session:
        return jsonify({"error": "Not found"}), 404
    try:
        session.delete_image(item_id, kind)
    except MockupError as e:
        return jsonify({"error": str(e)}), 404
    sessions.save(session)
    return jsonify(_summary(session))


@bp.put("/sessions/<session_id>/backgrounds/<background_id>/placement")
def set_placement(session_id, background_id):
    """JSON body: {"product": {x, y, width, height}, "logo": {...} (optional)}"""
    session = sessions.get(session_id)
    if not session:
        return jsonify({"error": "Not found"}), 404
    payload = request.json or {}
    if "product" not in payload:
        return jsonify({"error": "Missing field: product"}), 400
    try:
        product = Placement.from_dict(payload["product"])
        logo = Placement.from_dict(payload["logo"]) if payload.get("logo") else None
        bg = session.set_placement(background_id, product, logo)
    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    except MockupError as e:
        return jsonify({"error": str(e)}), 404
    sessions.save(session)
    return jsonify(bg.to_dict(include_data=False))


@bp.put("/sessions/<session_id>/selected-background")
def select_background(session_id):
    session = sessions.get(session_id)
    if not session:
        return jsonify({"error": "Not found"}), 404
    try:
        session.select_background((request.json or {}).get("id") or "")
    except MockupError as e:
        return jsonify({"error": str(e)}), 404
    sessions.save(session)
    return jsonify(_summary(session))


# -----------------------------
# Logo
# -----------------------------
@bp.post("/sessions/<session_id>/logo")
def upload_logo(session_id):
    session = sessions.get(session_id)
    if not session:
        return jsonify({"error": "Not found"}), 404
    f = request.files.get("file")
    if not f or not f.filename:
        return jsonify({"error": "file is required"}), 400
    try:
        items = _uploaded_items([f])
    except (ValueError, MockupError) as e:
        return jsonify({"error": str(e)}), 400
    session.set_logo(items[0])
    sessions.save(session)
    return jsonify(items[0].to_dict(include_data=False)), 201


@bp.delete("/sessions/<session_id>/logo")
def delete_logo(session_id):
    session = sessions.get(session_id)
    if not session:
        return jsonify({"error": "Not found"}), 404
    session.delete_logo()
    sessions.save(session)
    return jsonify(_summary(session))


@bp.put("/sessions/<session_id>/logo/enabled")
def toggle_logo(session_id):
    session = sessions.get(session_id)
    if not session:
        return jsonify({"error": "Not found"}), 404
    enabled = (request.json or {}).get("enabled")
    if not isinstance(enabled, bool):
        return jsonify({"error": "enabled must be true or false"}), 400
    session.set_logo_enabled(enabled)
    sessions.save(session)
    return jsonify(_summary(session))


# -----------------------------
# Effects
# -----------------------------
@bp.put("/sessions/<session_id>/effects")
def update_effects(session_id):
    """
    JSON body: {"shading": {...}, "lighting": {...}}; either may be omitted.
    Only the given fields change, e.g. {"lighting": {"enabled": true}}.
    """
    session = sessions.get(session_id)
    if not session:
        return jsonify({"error": "Not found"}), 404
    payload = request.json or {}
    try:
        session.patch_effects(shading=payload.get("shading"), lighting=payload.get("lighting"))
    except (KeyError, TypeError, ValueError) as e:
        return jsonify({"error": f"Invalid effect settings: {e}"}), 400
    sessions.save(session)
    return jsonify({
        "shadingOptions": session.shading.to_dict(),
        "lightingOptions": session.lighting.to_dict(),
    })


@bp.post("/sessions/<session_id>/lighting/colors")
def add_lighting_color(session_id):
    session = sessions.get(session_id)
    if not session:
        return jsonify({"error": "Not found"}), 404
    color = (request.json or {}).get("color") or "#ff00ff"
    try:
        new_color = session.add_lighting_color(color)
    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    sessions.save(session)
    return jsonify(new_color.to_dict()), 201


@bp.delete("/sessions/<session_id>/lighting/colors/<color_id>")
def remove_lighting_color(session_id, color_id):
    session = sessions.get(session_id)
    if not session:
        return jsonify({"error": "Not found"}), 404
    try:
        session.remove_lighting_color(color_id)
    except MockupError as e:
        return jsonify({"error": str(e)}), 404
    sessions.save(session)
    return jsonify(session.lighting.to_dict())


@bp.put("/sessions/<session_id>/lighting/colors/<color_id>")
def update_lighting_color(session_id, color_id):
    """JSON body: {"color": "#rrggbb" or any CSS color}"""
    session = sessions.get(session_id)
    if not session:
        return jsonify({"error": "Not found"}), 404
    try:
        updated = session.update_lighting_color(color_id, (request.json or {}).get("color"))
    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    except MockupError as e:
        return jsonify({"error": str(e)}), 404
    sessions.save(session)
    return jsonify(updated.to_dict())


@bp.put("/sessions/<session_id>/lighting/active-color")
def set_active_lighting_color(session_id):
    """JSON body: {"id": color id}; the preview glows in this color."""
    session = sessions.get(session_id)
    if not session:
        return jsonify({"error": "Not found"}), 404
    try:
        session.set_active_lighting_color((request.json or {}).get("id") or "")
    except MockupError as e:
        return jsonify({"error": str(e)}), 404
    sessions.save(session)
    return jsonify(session.lighting.to_dict())
