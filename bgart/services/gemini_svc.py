import base64
import os

from ..errors import GenerationError
from ..models import ImageItem
from ..utils.images import bytes_to_data_url

GEMINI_API_KEY = os.getenv("GEMINI_API_KEY")
GEMINI_IMAGE_MODEL = os.getenv("GEMINI_IMAGE_MODEL", "imagen-4.0-generate-001")


def _extract_generated_image_bytes(response) -> bytes | None:
    images = getattr(response, "generated_images", None) or []
    for generated in images:
        image = getattr(generated, "image", None)
        data = getattr(image, "image_bytes", None)
        if not data:
            continue
        if isinstance(data, bytes):
            return data
        if isinstance(data, str):
            return base64.b64decode(data)
    return None


def _make_client():
    try:
        from google import genai
    except ImportError as e:
        raise GenerationError(
            "google-genai is not installed. Add it to the environment and restart."
        ) from e
    return genai.Client(api_key=GEMINI_API_KEY)


def generate_background_image(prompt: str, *, client=None, model_override: str | None = None) -> ImageItem:
    """Generate one 16:9 background with the Imagen model.

    Returns a PNG ImageItem named after the prompt, with default placements.
    """
    if not prompt or not prompt.strip():
        raise GenerationError("Prompt cannot be empty.")
    if client is None:
        if not GEMINI_API_KEY:
            raise GenerationError("Gemini API key is not configured.")
        client = _make_client()

    from google.genai import types

    response = client.models.generate_images(
        model=(model_override or GEMINI_IMAGE_MODEL).strip(),
        prompt=prompt,
        config=types.GenerateImagesConfig(
            number_of_images=1,
            output_mime_type="image/png",
            aspect_ratio="16:9",
        ),
    )
    image_bytes = _extract_generated_image_bytes(response)
    if not image_bytes:
        raise GenerationError("Image generation failed, no images returned.")

    return ImageItem.create(f"{prompt[:20]}.png", bytes_to_data_url(image_bytes, "image/png"))
