"""
Expands a session's selections into render jobs and renders them in order.
"""
import logging
from typing import Callable, Iterable, List, Optional

from ..models import (
    ImageItem,
    LightingOptions,
    RenderJob,
    ResultItem,
    ShadingOptions,
    new_id,
)
from ..utils.mockups import JPEG_QUALITY, draw_mockup

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int], None]


def _jobs_for_product(product: ImageItem, backgrounds: List[ImageItem],
                      shading: ShadingOptions, lighting: LightingOptions) -> List[RenderJob]:
    jobs: List[RenderJob] = []
    if lighting.enabled and lighting.colors:
        if shading.enabled and backgrounds:
            # shading-only variant on the first background
            jobs.append(RenderJob(product, backgrounds[0], shading, lighting.with_enabled(False)))
        # backgrounds and colors are paired by position
        for background, color in zip(backgrounds, lighting.colors):
            jobs.append(RenderJob(product, background, shading, lighting, color.color))
    else:
        for background in backgrounds:
            jobs.append(RenderJob(product, background, shading, lighting))
    return jobs


def dedupe_jobs(jobs: Iterable[RenderJob]) -> List[RenderJob]:
    """Drop jobs whose (product, background, color) key was already seen."""
    seen = set()
    unique = []
    for job in jobs:
        if job.key in seen:
            continue
        seen.add(job.key)
        unique.append(job)
    return unique


def plan_jobs(
    products: List[ImageItem],
    backgrounds: List[ImageItem],
    shading: ShadingOptions,
    lighting: LightingOptions,
    logo: Optional[ImageItem] = None,
) -> List[RenderJob]:
    """Cross products with backgrounds (and glow colors) into unique jobs.

    The logo does not change the plan; it is applied at render time.
    """
    jobs: List[RenderJob] = []
    for product in products:
        jobs.extend(_jobs_for_product(product, backgrounds, shading, lighting))
    unique = dedupe_jobs(jobs)
    if len(unique) != len(jobs):
        logger.debug("Dropped %d duplicate job(s)", len(jobs) - len(unique))
    return unique


def render_batch(
    jobs: List[RenderJob],
    logo: Optional[ImageItem] = None,
    on_progress: Optional[ProgressCallback] = None,
    quality: int = JPEG_QUALITY,
) -> List[ResultItem]:
    """Render jobs one at a time; the first failure aborts the batch."""
    total = len(jobs)
    results: List[ResultItem] = []
    for count, job in enumerate(jobs, start=1):
        if on_progress:
            on_progress(count, total)
        logger.info("Generating... (%d/%d)", count, total)
        data_url = draw_mockup(
            job.background,
            job.product,
            job.shading,
            job.lighting,
            light_color=job.light_color,
            logo=logo,
            quality=quality,
        )
        results.append(ResultItem(
            id=new_id(),
            product_id=job.product.id,
            product_name=job.product.name,
            background_name=job.background.name,
            light_color=job.light_color,
            data_url=data_url,
        ))
    return results
