import base64
import binascii
import mimetypes
from io import BytesIO
from urllib.parse import unquote_to_bytes

from PIL import Image, UnidentifiedImageError

from ..errors import ImageDecodeError


def data_url_to_bytes(data_url: str) -> bytes:
    """Decode a data URL by hand (base64 or percent-encoded payload)."""
    if not data_url or not data_url.startswith("data:") or "," not in data_url:
        raise ImageDecodeError("Not a data URL")
    header, payload = data_url.split(",", 1)
    if header.endswith(";base64"):
        try:
            return base64.b64decode(payload, validate=False)
        except (binascii.Error, ValueError) as e:
            raise ImageDecodeError(f"Invalid base64 payload: {e}") from e
    return unquote_to_bytes(payload)


def data_url_mime(data_url: str) -> str:
    header = data_url.split(",", 1)[0]
    mime = header[len("data:"):].split(";", 1)[0]
    return mime or "text/plain"


def bytes_to_data_url(data: bytes, mime: str) -> str:
    return f"data:{mime};base64,{base64.b64encode(data).decode('ascii')}"


def _bytes_to_pil(image_bytes: bytes) -> Image.Image:
    try:
        img = Image.open(BytesIO(image_bytes))
        img.load()
    except (UnidentifiedImageError, OSError) as e:
        raise ImageDecodeError(f"Could not read image data: {e}") from e
    return img


def sniff_image_mime(data: bytes, filename: str | None = None) -> str:
    """MIME type from the image header, falling back to the file name."""
    try:
        with Image.open(BytesIO(data)) as img:
            mime = Image.MIME.get(img.format or "")
    except (UnidentifiedImageError, OSError):
        mime = None
    if not mime and filename:
        mime = mimetypes.guess_type(filename)[0]
    return mime or "application/octet-stream"


def image_bytes_to_data_url(data: bytes, filename: str | None = None) -> str:
    """Validate uploaded bytes as an image and wrap them in a data URL."""
    _bytes_to_pil(data)
    return bytes_to_data_url(data, sniff_image_mime(data, filename))


def load_image(data_url: str) -> Image.Image:
    """Decode a data URL into an RGBA PIL image."""
    return _bytes_to_pil(data_url_to_bytes(data_url)).convert("RGBA")


def encode_jpeg(img: Image.Image, quality: int = 90) -> bytes:
    buf = BytesIO()
    img.convert("RGB").save(buf, format="JPEG", quality=quality)
    return buf.getvalue()


def image_to_data_url(img: Image.Image, fmt: str = "PNG") -> str:
    buf = BytesIO()
    img.save(buf, format=fmt)
    return bytes_to_data_url(buf.getvalue(), Image.MIME[fmt.upper()])
