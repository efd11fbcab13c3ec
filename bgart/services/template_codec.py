"""
Template archives: a zip holding ``template.json`` plus one stored file per
background (and the optional logo). The manifest is the only record of which
stored file is which.
"""
import json
import logging
import uuid
import zipfile
from io import BytesIO
from typing import Any, BinaryIO, Dict, List, Optional, Union

from werkzeug.utils import secure_filename

from ..errors import TemplateError
from ..models import (
    ImageItem,
    LightingOptions,
    LoadedTemplate,
    Placement,
    ShadingOptions,
    new_id,
)
from ..utils.images import bytes_to_data_url, data_url_to_bytes, sniff_image_mime

logger = logging.getLogger(__name__)

MANIFEST_NAME = "template.json"


def stored_file_name(name: str) -> str:
    """Collision-resistant archive entry name for an image."""
    return f"{uuid.uuid4().hex}_{secure_filename(name) or 'image'}"


def create_template(
    name: str,
    backgrounds: List[ImageItem],
    shading: ShadingOptions,
    lighting: LightingOptions,
    logo: Optional[ImageItem] = None,
) -> bytes:
    """Bundle placed backgrounds, effect settings and logo into zip bytes."""
    manifest: Dict[str, Any] = {
        "name": name,
        "backgrounds": [],
        "shadingOptions": shading.to_dict(),
        "lightingOptions": lighting.to_dict(),
    }

    buf = BytesIO()
    with zipfile.ZipFile(buf, mode="w", compression=zipfile.ZIP_DEFLATED) as zf:
        for bg in backgrounds:
            if bg.placement is None:
                continue
            file_name = stored_file_name(bg.name)
            zf.writestr(file_name, data_url_to_bytes(bg.data_url))
            manifest["backgrounds"].append({
                "id": bg.id,
                "name": bg.name,
                "placement": bg.placement.to_dict(),
                "logoPlacement": bg.logo_placement.to_dict() if bg.logo_placement else None,
                "fileName": file_name,
            })

        if logo is not None:
            file_name = stored_file_name(logo.name)
            zf.writestr(file_name, data_url_to_bytes(logo.data_url))
            manifest["logo"] = {"id": logo.id, "name": logo.name, "fileName": file_name}

        zf.writestr(MANIFEST_NAME, json.dumps(manifest, indent=2, ensure_ascii=False))

    logger.info("Created template %r with %d background(s)", name, len(manifest["backgrounds"]))
    return buf.getvalue()


def _read_item(zf: zipfile.ZipFile, entry: Dict[str, Any]) -> Optional[ImageItem]:
    file_name = entry.get("fileName")
    if not file_name or file_name not in zf.namelist():
        return None
    data = zf.read(file_name)
    placement = entry.get("placement")
    logo_placement = entry.get("logoPlacement")
    return ImageItem(
        id=entry.get("id") or new_id(),
        name=entry.get("name") or file_name,
        data_url=bytes_to_data_url(data, sniff_image_mime(data, file_name)),
        placement=Placement.from_dict(placement) if placement else None,
        logo_placement=Placement.from_dict(logo_placement) if logo_placement else None,
    )


def load_template(source: Union[bytes, BinaryIO]) -> LoadedTemplate:
    """Read a template archive written by create_template."""
    if isinstance(source, (bytes, bytearray)):
        source = BytesIO(source)

    try:
        zf = zipfile.ZipFile(source)
    except zipfile.BadZipFile as e:
        raise TemplateError(f"Not a valid zip file: {e}") from e

    with zf:
        if MANIFEST_NAME not in zf.namelist():
            raise TemplateError(f"{MANIFEST_NAME} not found in the zip file.")
        try:
            manifest = json.loads(zf.read(MANIFEST_NAME).decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise TemplateError(f"{MANIFEST_NAME} is not valid JSON: {e}") from e

        try:
            backgrounds = []
            for entry in manifest.get("backgrounds") or []:
                item = _read_item(zf, entry)
                if item is None:
                    logger.debug("Template file %s missing; background skipped", entry.get("fileName"))
                    continue
                backgrounds.append(item)

            logo = None
            if manifest.get("logo"):
                logo = _read_item(zf, manifest["logo"])

            return LoadedTemplate(
                name=manifest.get("name") or "",
                backgrounds=backgrounds,
                shading=ShadingOptions.from_dict(manifest.get("shadingOptions") or {}),
                lighting=LightingOptions.from_dict(manifest.get("lightingOptions") or {}),
                logo=logo,
            )
        except (AttributeError, KeyError, TypeError, ValueError, zipfile.BadZipFile) as e:
            raise TemplateError(f"Invalid template contents: {e}") from e
