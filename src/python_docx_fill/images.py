"""
Image sizing and DrawingML generation for image placeholders.

Sizes are computed in pixels at 96 DPI and converted to EMUs (English Metric
Units) for the drawing XML.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from lxml import etree
from PIL import Image, UnidentifiedImageError

from .constants import (
    A_NAMESPACE,
    EMU_PER_PIXEL,
    IMAGE_CONTENT_TYPES,
    OFFICE_RELATIONSHIPS_NAMESPACE,
    PIC_NAMESPACE,
    WP_NAMESPACE,
    a,
    pic,
    r,
    w,
    wp,
)
from .errors import FileAccessError, FileOperation, TemplateNotFoundError, UnsupportedPartError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ImageInfo:
    """Native properties of an image file.

    Attributes:
        path: The image file
        width: Width in pixels
        height: Height in pixels
        extension: Normalized extension without dot (png, jpg, gif, bmp)
    """

    path: Path
    width: int
    height: int
    extension: str

    @property
    def content_type(self) -> str:
        return IMAGE_CONTENT_TYPES[self.extension]


def get_image_info(image_path: str | Path) -> ImageInfo:
    """Read an image's pixel dimensions with Pillow.

    Raises:
        TemplateNotFoundError: If the file does not exist
        UnsupportedPartError: If the extension is unsupported or the file cannot be decoded
    """
    path = Path(image_path)
    if not path.is_file():
        raise TemplateNotFoundError(
            f"Image file not found: {path}", context="image loading", file_path=str(path)
        )

    extension = path.suffix.lower().lstrip(".")
    if extension not in IMAGE_CONTENT_TYPES:
        raise UnsupportedPartError(
            f"Image format .{extension} is not supported", context="image loading",
            file_path=str(path),
        )

    try:
        with Image.open(path) as img:
            width, height = img.size
    except UnidentifiedImageError as e:
        raise UnsupportedPartError(
            f"Unable to decode image file: {path}", context="image loading", file_path=str(path)
        ) from e
    except PermissionError as e:
        raise FileAccessError(
            f"Access denied: {path}",
            operation=FileOperation.READ,
            context="image loading",
            file_path=str(path),
        ) from e

    return ImageInfo(path, width, height, extension)


def calculate_display_dimensions(
    original_width: int, original_height: int, max_width: int, max_height: int
) -> tuple[int, int]:
    """Fit an image inside a bounding box, preserving its aspect ratio.

    "Contain" mode: the image is scaled so that both sides fit; results are
    truncated toward zero.

    Raises:
        ValueError: If any dimension is not positive
    """
    if original_width <= 0 or original_height <= 0:
        raise ValueError("Original dimensions must be positive")
    if max_width <= 0 or max_height <= 0:
        raise ValueError("Maximum dimensions must be positive")

    scale = min(max_width / original_width, max_height / original_height)
    return int(original_width * scale), int(original_height * scale)


def fit_dimensions(
    original_width: int,
    original_height: int,
    max_width: int | None = None,
    max_height: int | None = None,
) -> tuple[int, int]:
    """Resolve the display size in pixels.

    With both bounds the image is contained within them; with one, the
    other side is scaled proportionally; with none, the native size is used.
    """
    if max_width and max_height:
        return calculate_display_dimensions(original_width, original_height, max_width, max_height)
    if max_width:
        return max_width, max(1, int(original_height * max_width / original_width))
    if max_height:
        return max(1, int(original_width * max_height / original_height)), max_height
    return original_width, original_height


def pixels_to_emu(pixels: int) -> int:
    return pixels * EMU_PER_PIXEL


def emu_to_pixels(emu: int) -> int:
    return emu // EMU_PER_PIXEL


def max_docpr_id(roots: Iterable[Any]) -> int:
    """Return the highest wp:docPr id used in the given parts (0 if none)."""
    highest = 0
    for root in roots:
        for doc_pr in root.iter(wp("docPr")):
            value = doc_pr.get("id", "")
            if value.isdigit():
                highest = max(highest, int(value))
    return highest


def create_inline_drawing(
    rel_id: str,
    width_emu: int,
    height_emu: int,
    doc_pr_id: int,
    name: str = "Picture",
    description: str = "",
) -> etree._Element:
    """Create the inline drawing XML element for an image.

    Args:
        rel_id: The relationship ID for the image on the owning part
        width_emu: Width in EMUs
        height_emu: Height in EMUs
        doc_pr_id: Drawing object id, unique within the document
        name: Name for the image (used in Word UI)
        description: Alt text description

    Returns:
        The w:drawing element containing the inline image
    """
    nsmap = {
        "wp": WP_NAMESPACE,
        "a": A_NAMESPACE,
        "pic": PIC_NAMESPACE,
        "r": OFFICE_RELATIONSHIPS_NAMESPACE,
    }

    drawing = etree.Element(w("drawing"))

    inline = etree.SubElement(
        drawing,
        wp("inline"),
        nsmap=nsmap,
        attrib={"distT": "0", "distB": "0", "distL": "0", "distR": "0"},
    )

    etree.SubElement(inline, wp("extent"), attrib={"cx": str(width_emu), "cy": str(height_emu)})
    etree.SubElement(inline, wp("effectExtent"), attrib={"l": "0", "t": "0", "r": "0", "b": "0"})

    doc_pr_attrib = {"id": str(doc_pr_id), "name": name}
    if description:
        doc_pr_attrib["descr"] = description
    etree.SubElement(inline, wp("docPr"), attrib=doc_pr_attrib)

    cnv_frame_pr = etree.SubElement(inline, wp("cNvGraphicFramePr"))
    etree.SubElement(cnv_frame_pr, a("graphicFrameLocks"), attrib={"noChangeAspect": "1"})

    graphic = etree.SubElement(inline, a("graphic"))
    graphic_data = etree.SubElement(graphic, a("graphicData"), attrib={"uri": PIC_NAMESPACE})
    pic_elem = etree.SubElement(graphic_data, pic("pic"))

    nv_pic_pr = etree.SubElement(pic_elem, pic("nvPicPr"))
    etree.SubElement(nv_pic_pr, pic("cNvPr"), attrib={"id": str(doc_pr_id), "name": name})
    cnv_pic_pr = etree.SubElement(nv_pic_pr, pic("cNvPicPr"))
    etree.SubElement(cnv_pic_pr, a("picLocks"), attrib={"noChangeAspect": "1"})

    blip_fill = etree.SubElement(pic_elem, pic("blipFill"))
    etree.SubElement(blip_fill, a("blip"), attrib={r("embed"): rel_id})
    stretch = etree.SubElement(blip_fill, a("stretch"))
    etree.SubElement(stretch, a("fillRect"))

    sp_pr = etree.SubElement(pic_elem, pic("spPr"))
    xfrm = etree.SubElement(sp_pr, a("xfrm"))
    etree.SubElement(xfrm, a("off"), attrib={"x": "0", "y": "0"})
    etree.SubElement(xfrm, a("ext"), attrib={"cx": str(width_emu), "cy": str(height_emu)})
    prst_geom = etree.SubElement(sp_pr, a("prstGeom"), attrib={"prst": "rect"})
    etree.SubElement(prst_geom, a("avLst"))

    logger.debug(f"Created inline drawing {doc_pr_id} for {rel_id} ({width_emu}x{height_emu} EMU)")
    return drawing
