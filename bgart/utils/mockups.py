import logging
import math

from PIL import Image, ImageColor, ImageFilter

from ..errors import ImageDecodeError, PlacementError
from ..models import ImageItem, LightingOptions, Placement, ShadingOptions
from .images import bytes_to_data_url, encode_jpeg, load_image

logger = logging.getLogger(__name__)

JPEG_QUALITY = 90
GLOW_LAYERS = 5

# Compositing mirrors a 2D canvas draw: background, scrim, filtered product
# with its drop shadow, then the logo with all effects reset.


def _transparent(size: tuple[int, int]) -> Image.Image:
    return Image.new("RGBA", size, (0, 0, 0, 0))


def _place_on_layer(img: Image.Image, size: tuple[int, int], box: tuple[int, int, int, int]) -> Image.Image | None:
    """Resize img into box on a transparent surface-sized layer (None if box is empty)."""
    left, top, width, height = box
    if width < 1 or height < 1:
        return None
    resized = img.resize((width, height), Image.Resampling.LANCZOS)
    layer = _transparent(size)
    # Plain paste copies RGBA as-is; negative offsets are cropped.
    layer.paste(resized, (left, top))
    return layer


def _shadow_of(layer: Image.Image, rgba: tuple[int, int, int, int], blur: float,
               offset: tuple[float, float] = (0, 0)) -> Image.Image:
    """Colored silhouette of layer's alpha, blurred and shifted like canvas shadows."""
    r, g, b, a = rgba
    alpha = layer.getchannel("A")
    if a < 255:
        alpha = alpha.point(lambda v: v * a // 255)
    shadow = Image.new("RGBA", layer.size, (r, g, b, 0))
    shadow.putalpha(alpha)
    if blur > 0:
        # Canvas and CSS shadows use a Gaussian with sigma = blur / 2.
        shadow = shadow.filter(ImageFilter.GaussianBlur(blur / 2))
    dx, dy = round(offset[0]), round(offset[1])
    if dx or dy:
        shifted = _transparent(layer.size)
        shifted.paste(shadow, (dx, dy))
        shadow = shifted
    return shadow


def _apply_glow(layer: Image.Image, color: str, intensity: float, scale: float) -> Image.Image:
    """Chain of drop-shadow(0 0 r color) filters with growing radius."""
    r, g, b = ImageColor.getrgb(color)[:3]
    for i in range(GLOW_LAYERS):
        radius = intensity * (i + 1) * 0.5 * scale
        glow = _shadow_of(layer, (r, g, b, 255), radius)
        layer = Image.alpha_composite(glow, layer)
    return layer


def shadow_offset(shading: ShadingOptions, scale: float = 1.0) -> tuple[float, float]:
    theta = math.radians(shading.angle)
    return (
        math.cos(theta) * shading.distance * scale,
        math.sin(theta) * shading.distance * scale,
    )


def draw_mockup(
    background: ImageItem,
    product: ImageItem,
    shading: ShadingOptions,
    lighting: LightingOptions,
    light_color: str | None = None,
    logo: ImageItem | None = None,
    product_placement: Placement | None = None,
    logo_placement: Placement | None = None,
    max_size: tuple[int, int] | None = None,
    quality: int = JPEG_QUALITY,
) -> str:
    """Composite product (and optional logo) onto background; returns a JPEG data URL.

    max_size downsizes the output surface for live previews; blur radii and
    offsets are scaled by the same ratio so effects keep their proportions.
    """
    placement = product_placement or background.placement
    if placement is None:
        raise PlacementError("Background placement is not set")

    bg_img = load_image(background.data_url)
    product_img = load_image(product.data_url)

    native_w = bg_img.width
    canvas = bg_img.copy()
    if max_size:
        canvas.thumbnail(max_size, Image.Resampling.LANCZOS)
    scale = canvas.width / native_w if native_w else 1.0
    size = canvas.size

    # 1-2. background and darkness scrim
    if lighting.enabled:
        alpha = round(255 * max(0.0, min(100.0, lighting.background_darkness)) / 100)
        canvas = Image.alpha_composite(canvas, Image.new("RGBA", size, (0, 0, 0, alpha)))

    # 3-6. product with glow filter and drop shadow
    layer = _place_on_layer(product_img, size, placement.to_box(*size))
    if layer is not None:
        if lighting.enabled and light_color:
            layer = _apply_glow(layer, light_color, lighting.intensity, scale)
        if shading.enabled:
            opacity = max(0.0, min(100.0, shading.opacity))
            shadow = _shadow_of(
                layer,
                (0, 0, 0, round(255 * opacity / 100)),
                shading.blur * scale,
                shadow_offset(shading, scale),
            )
            canvas = Image.alpha_composite(canvas, shadow)
        canvas = Image.alpha_composite(canvas, layer)
    else:
        logger.debug("Product placement for %s has no area; nothing drawn", background.name)

    # 7. logo, no effects
    logo_placement = logo_placement or background.logo_placement
    if logo is not None and logo_placement is not None:
        try:
            logo_layer = _place_on_layer(load_image(logo.data_url), size, logo_placement.to_box(*size))
            if logo_layer is not None:
                canvas = Image.alpha_composite(canvas, logo_layer)
        except (ImageDecodeError, OSError, ValueError) as e:
            logger.warning("Failed to draw logo %s on %s: %s", logo.name, background.name, e)

    # 8. encode
    return bytes_to_data_url(encode_jpeg(canvas, quality=quality), "image/jpeg")
