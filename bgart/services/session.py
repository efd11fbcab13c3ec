"""
One user's editing state and the workflow operations over it.

A session is plain in-memory state; routes load it from the SessionStore,
call one operation and save it back.
"""
import logging
from dataclasses import dataclass, field, replace
from typing import Any, BinaryIO, Dict, List, Optional, Union

from ..errors import WorkflowError
from ..models import (
    ImageItem,
    LightingColor,
    LightingOptions,
    Placement,
    ResultItem,
    ShadingOptions,
    backgrounds_complete,
    new_id,
)
from ..utils.mockups import JPEG_QUALITY, draw_mockup
from . import template_codec
from .job_planner import ProgressCallback, plan_jobs, render_batch

logger = logging.getLogger(__name__)

KINDS = ("background", "product")
PREVIEW_MAX_SIZE = (1280, 720)


@dataclass
class MockupSession:
    id: str = field(default_factory=new_id)
    backgrounds: List[ImageItem] = field(default_factory=list)
    products: List[ImageItem] = field(default_factory=list)
    logo: Optional[ImageItem] = None
    logo_enabled: bool = False
    shading: ShadingOptions = field(default_factory=ShadingOptions)
    lighting: LightingOptions = field(default_factory=LightingOptions.default)
    results: List[ResultItem] = field(default_factory=list)
    selected_background_id: Optional[str] = None

    # --- state checks ---

    @property
    def placements_complete(self) -> bool:
        return backgrounds_complete(self.backgrounds, self.logo)

    @property
    def can_generate(self) -> bool:
        return self.placements_complete and bool(self.products)

    def _items(self, kind: str) -> List[ImageItem]:
        if kind not in KINDS:
            raise WorkflowError(f"Unknown image kind: {kind}")
        return self.backgrounds if kind == "background" else self.products

    def get_background(self, background_id: str) -> ImageItem:
        for bg in self.backgrounds:
            if bg.id == background_id:
                return bg
        raise WorkflowError(f"Unknown background: {background_id}")

    # --- images ---

    def add_images(self, items: List[ImageItem], kind: str) -> None:
        self._items(kind).extend(items)
        if kind == "background" and not self.selected_background_id and self.backgrounds:
            self.selected_background_id = self.backgrounds[0].id

    def add_background(self, item: ImageItem) -> None:
        self.add_images([item], "background")

    def delete_image(self, item_id: str, kind: str) -> None:
        items = self._items(kind)
        remaining = [i for i in items if i.id != item_id]
        if len(remaining) == len(items):
            raise WorkflowError(f"Unknown {kind}: {item_id}")
        items[:] = remaining
        if kind != "background":
            return
        if self.selected_background_id == item_id:
            self.selected_background_id = remaining[0].id if remaining else None
        if not remaining:
            self.reset()

    def set_placement(self, background_id: str, product: Placement, logo: Optional[Placement] = None) -> ImageItem:
        bg = self.get_background(background_id)
        bg.placement = product
        if logo is not None:
            bg.logo_placement = logo
        return bg

    def select_background(self, background_id: str) -> None:
        self.selected_background_id = self.get_background(background_id).id

    # --- logo ---

    def set_logo(self, item: ImageItem) -> None:
        self.logo = item
        self.logo_enabled = True

    def delete_logo(self) -> None:
        self.logo = None

    def set_logo_enabled(self, enabled: bool) -> None:
        self.logo_enabled = enabled
        if not enabled:
            self.logo = None

    # --- effects ---

    def update_effects(self, shading: Optional[ShadingOptions] = None,
                       lighting: Optional[LightingOptions] = None) -> None:
        if shading is not None:
            self.shading = shading
        if lighting is not None:
            self.lighting = lighting

    def patch_effects(self, shading: Optional[Dict[str, Any]] = None,
                      lighting: Optional[Dict[str, Any]] = None) -> None:
        """Merge partial camelCase settings over the current ones."""
        self.update_effects(
            shading=ShadingOptions.from_dict({**self.shading.to_dict(), **shading}) if shading is not None else None,
            lighting=LightingOptions.from_dict({**self.lighting.to_dict(), **lighting}) if lighting is not None else None,
        )

    def add_lighting_color(self, color: str = "#ff00ff") -> LightingColor:
        new_color = LightingColor(id=new_id(), color=color)
        self.lighting = replace(
            self.lighting,
            colors=self.lighting.colors + (new_color,),
            active_color_id=self.lighting.active_color_id or new_color.id,
        )
        return new_color

    def remove_lighting_color(self, color_id: str) -> None:
        colors = tuple(c for c in self.lighting.colors if c.id != color_id)
        if len(colors) == len(self.lighting.colors):
            raise WorkflowError(f"Unknown lighting color: {color_id}")
        active = self.lighting.active_color_id
        if active == color_id:
            active = colors[0].id if colors else None
        self.lighting = replace(self.lighting, colors=colors, active_color_id=active)

    def update_lighting_color(self, color_id: str, color: str) -> LightingColor:
        updated = LightingColor(id=color_id, color=color)
        if color_id not in {c.id for c in self.lighting.colors}:
            raise WorkflowError(f"Unknown lighting color: {color_id}")
        colors = tuple(updated if c.id == color_id else c for c in self.lighting.colors)
        self.lighting = replace(self.lighting, colors=colors)
        return updated

    def set_active_lighting_color(self, color_id: str) -> None:
        """Pick the palette color used for the live preview glow."""
        if color_id not in {c.id for c in self.lighting.colors}:
            raise WorkflowError(f"Unknown lighting color: {color_id}")
        self.lighting = replace(self.lighting, active_color_id=color_id)

    # --- rendering ---

    def render_preview(self, background_id: Optional[str] = None,
                       max_size: tuple[int, int] = PREVIEW_MAX_SIZE) -> str:
        """Live preview of the first product on the selected background."""
        bg_id = background_id or self.selected_background_id
        if not bg_id or not self.products:
            raise WorkflowError("Select a background and product to see a preview.")
        background = self.get_background(bg_id)
        light_color = self.lighting.active_color() if self.lighting.enabled else None
        return draw_mockup(
            background,
            self.products[0],
            self.shading,
            self.lighting,
            light_color=light_color,
            logo=self.logo,
            max_size=max_size,
        )

    def generate(self, on_progress: Optional[ProgressCallback] = None,
                 quality: int = JPEG_QUALITY) -> List[ResultItem]:
        jobs = plan_jobs(self.products, self.backgrounds, self.shading, self.lighting, self.logo)
        if not jobs:
            logger.info("Nothing to generate for session %s", self.id)
            return self.results
        if not self.placements_complete:
            raise WorkflowError("Please set placement for all backgrounds before generating mockups.")
        self.results = render_batch(jobs, logo=self.logo, on_progress=on_progress, quality=quality)
        return self.results

    # --- templates ---

    def save_template(self, name: str) -> bytes:
        if not self.placements_complete:
            raise WorkflowError("Please set placement for all backgrounds before saving a template.")
        return template_codec.create_template(name, self.backgrounds, self.shading, self.lighting, self.logo)

    def load_template(self, source: Union[bytes, BinaryIO]) -> None:
        loaded = template_codec.load_template(source)
        self.reset()
        self.backgrounds = loaded.backgrounds
        self.shading = loaded.shading
        self.lighting = loaded.lighting
        if loaded.logo is not None:
            self.set_logo(loaded.logo)
        self.selected_background_id = loaded.backgrounds[0].id if loaded.backgrounds else None

    def reset(self) -> None:
        fresh = MockupSession(id=self.id)
        self.__dict__.update(fresh.__dict__)

    # --- serialization ---

    def to_dict(self, include_data: bool = True) -> Dict[str, Any]:
        return {
            "id": self.id,
            "backgrounds": [b.to_dict(include_data) for b in self.backgrounds],
            "products": [p.to_dict(include_data) for p in self.products],
            "logo": self.logo.to_dict(include_data) if self.logo else None,
            "logoEnabled": self.logo_enabled,
            "shadingOptions": self.shading.to_dict(),
            "lightingOptions": self.lighting.to_dict(),
            "results": [r.to_dict(include_data) for r in self.results],
            "selectedBackgroundId": self.selected_background_id,
            "placementsComplete": self.placements_complete,
            "canGenerate": self.can_generate,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MockupSession":
        return cls(
            id=data["id"],
            backgrounds=[ImageItem.from_dict(b) for b in data.get("backgrounds") or []],
            products=[ImageItem.from_dict(p) for p in data.get("products") or []],
            logo=ImageItem.from_dict(data["logo"]) if data.get("logo") else None,
            logo_enabled=bool(data.get("logoEnabled")),
            shading=ShadingOptions.from_dict(data.get("shadingOptions") or {}),
            lighting=LightingOptions.from_dict(data["lightingOptions"]) if data.get("lightingOptions") else LightingOptions.default(),
            results=[ResultItem.from_dict(r) for r in data.get("results") or []],
            selected_background_id=data.get("selectedBackgroundId"),
        )
