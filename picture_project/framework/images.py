from __future__ import annotations

import dataclasses
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Union

from PIL import Image, UnidentifiedImageError

from picture_project.framework.variants import (
    VARIANT_SEPARATOR,
    Manipulation,
    VariantChain,
    encode_manipulation,
)


def _join_url(url_base: str, name: str) -> str:
    if not url_base:
        return name
    return f"{url_base.rstrip('/')}/{name}"


@dataclass(frozen=True)
class SourceImage:
    """Original, unmanipulated image.

    Fields:
        filename: File name used to build URLs, e.g. "hero.jpg".
        width / height: Native size in pixels.
        pixels: Loaded Pillow image, if any. Excluded from equality.
        url_base: Prefix for URLs of this image and everything derived from it.
    """

    filename: str
    width: int
    height: int
    pixels: Optional[Image.Image] = field(default=None, compare=False, repr=False)
    url_base: str = ""

    def __post_init__(self) -> None:
        if not isinstance(self.filename, str) or not self.filename.strip():
            raise TypeError("SourceImage.filename must be a non-empty string")
        if self.width <= 0 or self.height <= 0:
            raise ValueError(f"Invalid source image size: {self.width}x{self.height}")

    @property
    def base(self) -> None:
        return None

    @property
    def variant(self) -> str:
        return ""

    @property
    def chain(self) -> VariantChain:
        return ()

    @property
    def source(self) -> "SourceImage":
        return self

    @property
    def extension(self) -> str:
        return Path(self.filename).suffix.lower().lstrip(".")

    @property
    def url(self) -> str:
        return _join_url(self.url_base, self.filename)


@dataclass(frozen=True)
class DerivedImage:
    """Image produced by applying one manipulation to ``base``.

    Following ``base`` always ends at a ``SourceImage``; a derived image can only
    be built from an image that already exists, so the chain cannot loop.
    ``render_width``/``render_height`` override the size an image is displayed
    at (used by retina variants) without touching the pixel size.
    """

    base: Union[SourceImage, "DerivedImage"]
    manipulation: Manipulation
    width: int
    height: int
    extension: str
    pixels: Optional[Image.Image] = field(default=None, compare=False, repr=False)
    render_width: Optional[int] = None
    render_height: Optional[int] = None

    def __post_init__(self) -> None:
        if not isinstance(self.base, (SourceImage, DerivedImage)):
            raise TypeError(
                f"DerivedImage.base must be an image, got {type(self.base).__name__}"
            )

    @property
    def variant(self) -> str:
        segment = encode_manipulation(self.manipulation)
        if not self.base.variant:
            return segment
        return f"{self.base.variant}{VARIANT_SEPARATOR}{segment}"

    @property
    def chain(self) -> VariantChain:
        return self.base.chain + (self.manipulation,)

    @property
    def source(self) -> SourceImage:
        return self.base.source

    @property
    def filename(self) -> str:
        stem = Path(self.source.filename).stem
        return f"{stem}__{self.variant}.{self.extension}"

    @property
    def url(self) -> str:
        return _join_url(self.source.url_base, self.filename)

    def with_render_size(self, width: int, height: int) -> "DerivedImage":
        return dataclasses.replace(self, render_width=width, render_height=height)


AnyImage = Union[SourceImage, DerivedImage]


def load_source_image(file_path: str | os.PathLike[str], *, url_base: str = "") -> SourceImage:
    """Open an image file with Pillow and wrap it as a ``SourceImage``.

    Raises:
        FileNotFoundError: if the path does not point to a file.
        ValueError: if Pillow cannot identify the file as an image.
    """

    path = Path(file_path)
    if not path.exists() or not path.is_file():
        raise FileNotFoundError(f"Image file not found: {path}")

    try:
        with Image.open(path) as opened:
            opened.load()
            pixels = opened.copy()
    except UnidentifiedImageError as exc:
        raise ValueError(f"File is not an image: {path}") from exc

    width, height = pixels.size
    return SourceImage(
        filename=path.name,
        width=width,
        height=height,
        pixels=pixels,
        url_base=url_base,
    )
