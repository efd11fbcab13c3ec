"""
Data model shared by the compositor, job planner, template codec and session.

Every type round-trips through camelCase dicts so template manifests stay
compatible with archives written by the browser tool.
"""
import uuid
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional

from PIL import ImageColor


def new_id() -> str:
    return uuid.uuid4().hex


@dataclass(frozen=True)
class Placement:
    """Normalized rectangle: each field is a fraction of the background size."""

    x: float
    y: float
    width: float
    height: float

    def to_box(self, surface_w: int, surface_h: int) -> tuple[int, int, int, int]:
        """Resolve to integer pixel (left, top, width, height) on a surface."""
        return (
            round(self.x * surface_w),
            round(self.y * surface_h),
            round(self.width * surface_w),
            round(self.height * surface_h),
        )

    def to_dict(self) -> Dict[str, float]:
        return {"x": self.x, "y": self.y, "width": self.width, "height": self.height}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Placement":
        try:
            return cls(
                x=float(data["x"]),
                y=float(data["y"]),
                width=float(data["width"]),
                height=float(data["height"]),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise ValueError(f"Invalid placement: {data!r}") from e


DEFAULT_PRODUCT_PLACEMENT = Placement(0.15, 0.15, 0.7, 0.7)
DEFAULT_LOGO_PLACEMENT = Placement(0.05, 0.05, 0.2, 0.2)


def _placement_or_none(data) -> Optional[Placement]:
    return Placement.from_dict(data) if data else None


@dataclass
class ImageItem:
    id: str
    name: str
    data_url: str
    placement: Optional[Placement] = None
    logo_placement: Optional[Placement] = None

    @classmethod
    def create(cls, name: str, data_url: str, *, with_default_placements: bool = True) -> "ImageItem":
        """New item with a fresh id; uploads start with the default placements."""
        item = cls(id=new_id(), name=name, data_url=data_url)
        if with_default_placements:
            item.placement = DEFAULT_PRODUCT_PLACEMENT
            item.logo_placement = DEFAULT_LOGO_PLACEMENT
        return item

    def is_placement_complete(self, logo_active: bool) -> bool:
        if self.placement is None:
            return False
        return not logo_active or self.logo_placement is not None

    def to_dict(self, include_data: bool = True) -> Dict[str, Any]:
        out: Dict[str, Any] = {"id": self.id, "name": self.name}
        if include_data:
            out["dataUrl"] = self.data_url
        out["placement"] = self.placement.to_dict() if self.placement else None
        out["logoPlacement"] = self.logo_placement.to_dict() if self.logo_placement else None
        return out

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ImageItem":
        return cls(
            id=data.get("id") or new_id(),
            name=data["name"],
            data_url=data["dataUrl"],
            placement=_placement_or_none(data.get("placement")),
            logo_placement=_placement_or_none(data.get("logoPlacement")),
        )


@dataclass(frozen=True)
class ShadingOptions:
    """A single directional drop shadow."""

    enabled: bool = True
    angle: float = 135
    distance: float = 10
    blur: float = 20
    opacity: float = 50

    def to_dict(self) -> Dict[str, Any]:
        return {
            "enabled": self.enabled,
            "angle": self.angle,
            "distance": self.distance,
            "blur": self.blur,
            "opacity": self.opacity,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ShadingOptions":
        base = cls()
        return cls(
            enabled=bool(data.get("enabled", base.enabled)),
            angle=float(data.get("angle", base.angle)),
            distance=float(data.get("distance", base.distance)),
            blur=float(data.get("blur", base.blur)),
            opacity=float(data.get("opacity", base.opacity)),
        )


@dataclass(frozen=True)
class LightingColor:
    id: str
    color: str

    def __post_init__(self):
        # any CSS color the browser tool accepts: hex, rgb(), hsl() or a name
        if not isinstance(self.color, str):
            raise ValueError(f"Invalid color: {self.color!r}")
        try:
            ImageColor.getrgb(self.color)
        except ValueError as e:
            raise ValueError(f"Invalid color: {self.color!r}") from e

    def to_dict(self) -> Dict[str, str]:
        return {"id": self.id, "color": self.color}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LightingColor":
        return cls(id=data.get("id") or new_id(), color=data["color"])


def _default_colors() -> List[LightingColor]:
    return [LightingColor(id=new_id(), color="#00ffff")]


@dataclass(frozen=True)
class LightingOptions:
    """Neon glow settings; every palette color yields one rendered variant."""

    enabled: bool = False
    intensity: float = 15
    background_darkness: float = 70
    colors: tuple[LightingColor, ...] = ()
    active_color_id: Optional[str] = None

    @classmethod
    def default(cls) -> "LightingOptions":
        colors = tuple(_default_colors())
        return cls(colors=colors, active_color_id=colors[0].id)

    def active_color(self) -> Optional[str]:
        for c in self.colors:
            if c.id == self.active_color_id:
                return c.color
        return None

    def with_enabled(self, enabled: bool) -> "LightingOptions":
        return replace(self, enabled=enabled)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "enabled": self.enabled,
            "intensity": self.intensity,
            "backgroundDarkness": self.background_darkness,
            "colors": [c.to_dict() for c in self.colors],
            "activeColorId": self.active_color_id,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LightingOptions":
        base = cls()
        return cls(
            enabled=bool(data.get("enabled", base.enabled)),
            intensity=float(data.get("intensity", base.intensity)),
            background_darkness=float(data.get("backgroundDarkness", base.background_darkness)),
            colors=tuple(LightingColor.from_dict(c) for c in data.get("colors") or []),
            active_color_id=data.get("activeColorId"),
        )


@dataclass
class ResultItem:
    id: str
    product_id: str
    product_name: str
    background_name: str
    data_url: str
    light_color: Optional[str] = None

    def to_dict(self, include_data: bool = True) -> Dict[str, Any]:
        out = {
            "id": self.id,
            "productId": self.product_id,
            "productName": self.product_name,
            "backgroundName": self.background_name,
            "lightColor": self.light_color,
        }
        if include_data:
            out["dataUrl"] = self.data_url
        return out

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ResultItem":
        return cls(
            id=data["id"],
            product_id=data["productId"],
            product_name=data["productName"],
            background_name=data["backgroundName"],
            data_url=data["dataUrl"],
            light_color=data.get("lightColor"),
        )


@dataclass
class RenderJob:
    product: ImageItem
    background: ImageItem
    shading: ShadingOptions
    lighting: LightingOptions
    light_color: Optional[str] = None

    @property
    def key(self) -> tuple[str, str, str]:
        return (self.product.id, self.background.id, self.light_color or "no-color")


@dataclass
class LoadedTemplate:
    name: str
    backgrounds: List[ImageItem] = field(default_factory=list)
    shading: ShadingOptions = field(default_factory=ShadingOptions)
    lighting: LightingOptions = field(default_factory=LightingOptions.default)
    logo: Optional[ImageItem] = None


def backgrounds_complete(backgrounds: List[ImageItem], logo: Optional[ImageItem]) -> bool:
    """True when there is at least one background and all are placement-complete."""
    logo_active = logo is not None
    return bool(backgrounds) and all(bg.is_placement_complete(logo_active) for bg in backgrounds)
