from __future__ import annotations

import logging
from dataclasses import dataclass
from io import BytesIO
from typing import List, Optional, Set, Tuple

from PIL import Image, ImageChops, UnidentifiedImageError

from .glb import GlbContainer

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TextureImage:
    name: str
    width: int
    height: int
    # Brightest and darkest HSV value, only read for base color textures
    min_value: Optional[int] = None
    max_value: Optional[int] = None
    base_color: bool = False

    @property
    def size(self) -> Tuple[int, int]:
        return self.width, self.height

    def is_power_of_two(self) -> bool:
        return _power_of_two(self.width) and _power_of_two(self.height)

    def is_quadratic(self) -> bool:
        return self.width == self.height


def image_size(data: bytes) -> Optional[Tuple[int, int]]:
    """Return ``(width, height)`` of any image format Pillow can identify, or None."""
    try:
        with Image.open(BytesIO(data)) as img:
            return img.size
    except UnidentifiedImageError:
        return None


def read_image(data: bytes, *, name: str = "", base_color: bool = False) -> Optional[TextureImage]:
    try:
        with Image.open(BytesIO(data)) as img:
            width, height = img.size
            min_value: Optional[int] = None
            max_value: Optional[int] = None
            if base_color:
                red, green, blue = img.convert("RGB").split()
                # HSV value is the largest channel of each pixel
                value = ImageChops.lighter(ImageChops.lighter(red, green), blue)
                min_value, max_value = value.getextrema()
    except UnidentifiedImageError:
        logger.warning("image %s is not in a readable format", name or "unnamed")
        return None
    except OSError as exc:
        logger.warning("image %s could not be decoded: %s", name or "unnamed", exc)
        return None
    return TextureImage(
        name=name,
        width=width,
        height=height,
        min_value=min_value,
        max_value=max_value,
        base_color=base_color,
    )


def base_color_images(document: dict) -> Set[int]:
    """Image indices reached through material -> baseColorTexture -> texture.source."""
    textures = document.get("textures") or []
    indices: Set[int] = set()
    for material in document.get("materials") or []:
        info = (material.get("pbrMetallicRoughness") or {}).get("baseColorTexture")
        if not info:
            continue
        texture_index = info.get("index")
        if isinstance(texture_index, int) and 0 <= texture_index < len(textures):
            source = textures[texture_index].get("source")
            if isinstance(source, int):
                indices.add(source)
    return indices


def texture_images(container: GlbContainer) -> List[TextureImage]:
    """Every image embedded through a buffer view; unreadable images are skipped."""
    document = container.json
    views = document.get("bufferViews") or []
    images: List[TextureImage] = []
    if container.bin is None:
        return images
    base_color = base_color_images(document)
    for index, image in enumerate(document.get("images") or []):
        view_index = image.get("bufferView")
        if not isinstance(view_index, int) or view_index >= len(views):
            continue
        view = views[view_index]
        start = view.get("byteOffset", 0)
        loaded = read_image(
            container.bin[start : start + view.get("byteLength", 0)],
            name=image.get("name") or image.get("uri") or f"image{index}",
            base_color=index in base_color,
        )
        if loaded is not None:
            images.append(loaded)
    return images


def texture_sizes(container: GlbContainer) -> List[Tuple[int, int]]:
    return [image.size for image in texture_images(container)]


def _power_of_two(value: int) -> bool:
    return value > 0 and value & (value - 1) == 0
