import re
import zipfile
from io import BytesIO
from typing import List

from ..errors import WorkflowError
from ..models import ResultItem
from ..utils.images import data_url_to_bytes

_EXT_RE = re.compile(r"\.[^/.]+$")
_UNSAFE_RE = re.compile(r"[^a-z0-9_.-]", re.IGNORECASE)


def strip_extension(name: str) -> str:
    return _EXT_RE.sub("", name)


def sanitize_archive_name(name: str) -> str:
    """Download-safe file name stem: [a-z0-9_.-] only, lower-cased."""
    return _UNSAFE_RE.sub("_", name).lower()


def result_file_name(result: ResultItem) -> str:
    stem = strip_extension(result.background_name)
    if result.light_color:
        stem = f"{stem}_{result.light_color}"
    return f"{stem}.jpg"


def _unique_entry(path: str, written: set) -> str:
    """First free archive path: path, then stem_2.ext, stem_3.ext, ..."""
    candidate = path
    stem, ext = path.rsplit(".", 1)
    n = 2
    while candidate in written:
        candidate = f"{stem}_{n}.{ext}"
        n += 1
    written.add(candidate)
    return candidate


def build_results_zip(results: List[ResultItem]) -> bytes:
    """All results, one folder per product."""
    buf = BytesIO()
    written: set = set()
    with zipfile.ZipFile(buf, mode="w", compression=zipfile.ZIP_DEFLATED) as zf:
        for result in results:
            folder = strip_extension(result.product_name)
            entry = _unique_entry(f"{folder}/{result_file_name(result)}", written)
            zf.writestr(entry, data_url_to_bytes(result.data_url))
    return buf.getvalue()


def build_product_zip(results: List[ResultItem], product_id: str) -> bytes:
    """Results of a single product at the archive root."""
    product_results = [r for r in results if r.product_id == product_id]
    if not product_results:
        raise WorkflowError(f"No results for product {product_id}")
    buf = BytesIO()
    written: set = set()
    with zipfile.ZipFile(buf, mode="w", compression=zipfile.ZIP_DEFLATED) as zf:
        for result in product_results:
            zf.writestr(_unique_entry(result_file_name(result), written), data_url_to_bytes(result.data_url))
    return buf.getvalue()
