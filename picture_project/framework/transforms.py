"""Manipulation registry and the Pillow-backed transform service.

Every manipulation method is a named handler taking a Pillow image plus the
manipulation's arguments and returning a new Pillow image, or ``None`` when the
requested output cannot be produced (e.g. a non-positive size). The service
wraps handler results into ``DerivedImage`` values that remember their base.
"""

from __future__ import annotations

import difflib
import logging
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Optional, Protocol, Sequence

from PIL import Image, ImageColor, ImageOps

from picture_project.framework.errors import PictureError, UnknownManipulationError
from picture_project.framework.images import AnyImage, DerivedImage
from picture_project.framework.variants import Manipulation

logger = logging.getLogger(__name__)

CONVERT_METHOD = "Convert"
EXT_REWRITE_METHOD = "ExtRewrite"

Handler = Callable[..., Optional[Image.Image]]


class TransformService(Protocol):
    def transform(
        self, image: AnyImage, method: str, arguments: Sequence[Any]
    ) -> Optional[DerivedImage]:
        ...

    def convert(self, image: AnyImage, target_format: str) -> Optional[DerivedImage]:
        ...


@dataclass(frozen=True)
class ManipulationRef:
    name: str
    handler: Handler
    variant_name: str | None = None
    doc: str | None = None
    # Positions of size arguments scaled on replay; None scales every int.
    scaled_positions: tuple[int, ...] | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.name, str) or not self.name.isalnum():
            raise TypeError(f"Manipulation name must be alphanumeric: {self.name!r}")
        if self.variant_name is None:
            object.__setattr__(self, "variant_name", self.name)


@dataclass(frozen=True)
class ManipulationRegistry:
    _by_name: dict[str, ManipulationRef]

    @classmethod
    def from_refs(cls, refs: Iterable[ManipulationRef]) -> "ManipulationRegistry":
        entries: dict[str, ManipulationRef] = {}
        for ref in refs:
            key = ref.name.lower()
            if key in entries:
                raise ValueError(f"Duplicate manipulation name: {ref.name}")
            entries[key] = ref
        return cls(_by_name=entries)

    def available(self) -> tuple[str, ...]:
        return tuple(sorted(ref.name for ref in self._by_name.values()))

    def variant_names(self) -> tuple[str, ...]:
        return tuple(sorted({str(ref.variant_name) for ref in self._by_name.values()}))

    def describe(self) -> tuple[dict[str, Any], ...]:
        return tuple(
            {"name": ref.name, "variant_name": ref.variant_name, "doc": ref.doc}
            for ref in sorted(self._by_name.values(), key=lambda r: r.name)
        )

    def suggest(self, name: str, *, limit: int = 3) -> tuple[str, ...]:
        key = (name or "").strip()
        if not key:
            return ()
        return tuple(difflib.get_close_matches(key, list(self.available()), n=limit))

    def find(self, name: str) -> ManipulationRef | None:
        """Look up by method or variant name, or return None."""
        key = (name or "").strip().lower()
        if key in self._by_name:
            return self._by_name[key]
        for ref in self._by_name.values():
            if str(ref.variant_name).lower() == key:
                return ref
        return None

    def resolve(self, name: str) -> ManipulationRef:
        if not isinstance(name, str) or not name.strip():
            raise UnknownManipulationError("Manipulation method must be a non-empty string")
        ref = self._by_name.get(name.strip().lower())
        if ref is not None:
            return ref

        suggestions = self.suggest(name)
        hint = f" (did you mean: {', '.join(suggestions)})" if suggestions else ""
        raise UnknownManipulationError(f"Unknown manipulation method: {name}{hint}")


def _positive(*values: Any) -> bool:
    return all(isinstance(v, (int, float)) and not isinstance(v, bool) and v > 0 for v in values)


def _resized(image: Image.Image, width: int, height: int) -> Image.Image:
    return image.resize((int(width), int(height)), resample=Image.Resampling.LANCZOS)


def _fit_size(width: int, height: int, box_w: float, box_h: float) -> tuple[int, int]:
    scale = min(box_w / float(width), box_h / float(height))
    return max(1, int(round(width * scale))), max(1, int(round(height * scale)))


def resized_image(image: Image.Image, width: int, height: int) -> Optional[Image.Image]:
    if not _positive(width, height):
        return None
    return _resized(image, width, height)


def fit(image: Image.Image, width: int, height: int) -> Optional[Image.Image]:
    if not _positive(width, height):
        return None
    return _resized(image, *_fit_size(image.width, image.height, width, height))


def fit_max(image: Image.Image, width: int, height: int) -> Optional[Image.Image]:
    if not _positive(width, height):
        return None
    box_w, box_h = min(width, image.width), min(height, image.height)
    return _resized(image, *_fit_size(image.width, image.height, box_w, box_h))


def fill(image: Image.Image, width: int, height: int) -> Optional[Image.Image]:
    if not _positive(width, height):
        return None
    return ImageOps.fit(image, (int(width), int(height)), method=Image.Resampling.LANCZOS)


def fill_max(image: Image.Image, width: int, height: int) -> Optional[Image.Image]:
    if not _positive(width, height):
        return None
    # Keep the requested aspect ratio but never exceed the source size.
    scale = min(1.0, image.width / float(width), image.height / float(height))
    target = (max(1, int(width * scale)), max(1, int(height * scale)))
    return ImageOps.fit(image, target, method=Image.Resampling.LANCZOS)


def pad(
    image: Image.Image, width: int, height: int, background: str = "FFFFFF"
) -> Optional[Image.Image]:
    if not _positive(width, height):
        return None
    if isinstance(background, int) and not isinstance(background, bool):
        # YAML reads unquoted hex such as 111111 or 000000 as an int.
        background = f"{background:06d}"
    color = background if str(background).startswith("#") else f"#{background}"
    try:
        rgb = ImageColor.getrgb(color)
    except ValueError:
        return None
    return ImageOps.pad(
        image.convert("RGB"), (int(width), int(height)), method=Image.Resampling.LANCZOS, color=rgb
    )


def scale_width(image: Image.Image, width: int) -> Optional[Image.Image]:
    if not _positive(width):
        return None
    height = max(1, int(round(image.height * width / float(image.width))))
    return _resized(image, width, height)


def scale_height(image: Image.Image, height: int) -> Optional[Image.Image]:
    if not _positive(height):
        return None
    width = max(1, int(round(image.width * height / float(image.height))))
    return _resized(image, width, height)


def scale_max_width(image: Image.Image, width: int) -> Optional[Image.Image]:
    if not _positive(width):
        return None
    return scale_width(image, min(width, image.width))


def scale_max_height(image: Image.Image, height: int) -> Optional[Image.Image]:
    if not _positive(height):
        return None
    return scale_height(image, min(height, image.height))


def crop_width(image: Image.Image, width: int) -> Optional[Image.Image]:
    if not _positive(width):
        return None
    width = min(int(width), image.width)
    left = (image.width - width) // 2
    return image.crop((left, 0, left + width, image.height))


def crop_height(image: Image.Image, height: int) -> Optional[Image.Image]:
    if not _positive(height):
        return None
    height = min(int(height), image.height)
    top = (image.height - height) // 2
    return image.crop((0, top, image.width, top + height))


def quality(image: Image.Image, value: int) -> Optional[Image.Image]:
    """Quality only affects encoding, so the pixels are copied unchanged."""
    if not _positive(value) or value > 100:
        return None
    return image.copy()


def _unsupported(image: Image.Image, *arguments: Any) -> Optional[Image.Image]:
    raise PictureError("Format conversion is handled by TransformService.convert")


DEFAULT_REGISTRY = ManipulationRegistry.from_refs(
    [
        ManipulationRef("ResizedImage", resized_image, doc="Resize to exactly width x height."),
        ManipulationRef("Fit", fit, doc="Scale to fit inside width x height."),
        ManipulationRef("FitMax", fit_max, doc="Fit, but never upscale."),
        ManipulationRef("Fill", fill, doc="Scale and centre-crop to width x height."),
        ManipulationRef("FillMax", fill_max, doc="Fill, but never upscale."),
        ManipulationRef(
            "Pad", pad, doc="Fit and pad with a background colour.", scaled_positions=(0, 1)
        ),
        ManipulationRef("ScaleWidth", scale_width, doc="Scale to width, keep aspect ratio."),
        ManipulationRef("ScaleHeight", scale_height, doc="Scale to height, keep aspect ratio."),
        ManipulationRef("ScaleMaxWidth", scale_max_width, doc="ScaleWidth, but never upscale."),
        ManipulationRef("ScaleMaxHeight", scale_max_height, doc="ScaleHeight, but never upscale."),
        ManipulationRef("CropWidth", crop_width, doc="Centre-crop to at most width."),
        ManipulationRef("CropHeight", crop_height, doc="Centre-crop to at most height."),
        ManipulationRef(
            "Quality",
            quality,
            doc="Record output quality (1-100) in the variant; pixels are unchanged.",
            scaled_positions=(),
        ),
        ManipulationRef(
            CONVERT_METHOD,
            _unsupported,
            variant_name=EXT_REWRITE_METHOD,
            doc="Convert to another file format.",
        ),
    ]
)


def _normalize_format(target_format: str) -> str | None:
    if not isinstance(target_format, str) or not target_format.strip():
        return None
    extension = target_format.strip().lower().lstrip(".")
    if f".{extension}" not in Image.registered_extensions():
        return None
    return extension


class PillowTransformService:
    """Apply registered manipulations with Pillow.

    Returns ``None`` (never raises) when a manipulation cannot produce an image;
    unknown methods and malformed argument lists raise, since they are
    configuration problems rather than per-image failures.
    """

    def __init__(self, registry: ManipulationRegistry | None = None) -> None:
        self.registry = registry or DEFAULT_REGISTRY

    def transform(
        self, image: AnyImage, method: str, arguments: Sequence[Any]
    ) -> Optional[DerivedImage]:
        ref = self.registry.resolve(method)
        arguments = tuple(arguments)

        if ref.name == CONVERT_METHOD:
            if len(arguments) != 1:
                raise PictureError(f"{CONVERT_METHOD} expects one argument, got {len(arguments)}")
            return self.convert(image, arguments[0])

        if image.pixels is None:
            logger.warning("Cannot apply %s: image has no pixel data (%s)", ref.name, image.url)
            return None

        try:
            result = ref.handler(image.pixels, *arguments)
        except TypeError as exc:
            raise PictureError(f"Invalid arguments for {ref.name}: {list(arguments)!r}") from exc

        if result is None:
            logger.debug("Manipulation %s%r produced no image for %s", ref.name, arguments, image.url)
            return None

        return DerivedImage(
            base=image,
            manipulation=Manipulation(ref.name, arguments),
            width=result.width,
            height=result.height,
            extension=image.extension,
            pixels=result,
        )

    def convert(self, image: AnyImage, target_format: str) -> Optional[DerivedImage]:
        extension = _normalize_format(target_format)
        if extension is None:
            logger.debug("Unsupported target format %r for %s", target_format, image.url)
            return None
        if image.pixels is None:
            logger.warning("Cannot convert to %s: image has no pixel data (%s)", extension, image.url)
            return None

        pixels = image.pixels
        if extension in {"jpg", "jpeg"} and pixels.mode not in {"RGB", "L"}:
            pixels = pixels.convert("RGB")
        else:
            pixels = pixels.copy()

        return DerivedImage(
            base=image,
            manipulation=Manipulation(EXT_REWRITE_METHOD, (image.extension, extension)),
            width=pixels.width,
            height=pixels.height,
            extension=extension,
            pixels=pixels,
        )

    def apply_chain(self, image: AnyImage, chain: Iterable[Manipulation]) -> Optional[AnyImage]:
        """Re-derive an image by applying a decoded variant chain in order."""

        current: Optional[AnyImage] = image
        for manipulation in chain:
            if manipulation.is_noop:
                continue
            if manipulation.method == EXT_REWRITE_METHOD:
                if len(manipulation.arguments) < 2:
                    raise PictureError(f"{EXT_REWRITE_METHOD} expects two arguments")
                current = self.convert(current, manipulation.arguments[1])
            else:
                current = self.transform(current, manipulation.method, manipulation.arguments)
            if current is None:
                return None
        return current
