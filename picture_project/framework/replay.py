"""Replay a derived image's manipulations at a higher pixel density.

A retina variant is the same image rendered at the same size but built from
``factor`` times as many pixels. Rather than upscaling the final image, every
manipulation that produced it is replayed from the source with its integer
(size) arguments multiplied by ``factor``. If at any step the image being
manipulated is smaller than the scaled target, no retina variant exists.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Optional

from picture_project.framework.errors import InvalidFactorError, MalformedVariantError
from picture_project.framework.images import AnyImage, DerivedImage
from picture_project.framework.transforms import (
    DEFAULT_REGISTRY,
    EXT_REWRITE_METHOD,
    ManipulationRegistry,
    TransformService,
)
from picture_project.framework.variants import VARIANT_SEPARATOR, Manipulation, parse_segment

logger = logging.getLogger(__name__)

_FACTOR_PATTERN = re.compile(r"^(\d+(\.\d+)?)x$")


def parse_factor(factor: str) -> float:
    """Parse a density factor such as ``"2x"`` or ``"1.5x"``."""

    if not isinstance(factor, str):
        raise InvalidFactorError(f"Invalid factor: {factor!r}")
    match = _FACTOR_PATTERN.match(factor.strip())
    if not match:
        raise InvalidFactorError(
            f'Invalid factor {factor!r}. Must be a float followed by "x" (e.g. "2x")'
        )
    value = float(match.group(1))
    if value <= 0:
        raise InvalidFactorError(f"Factor must be greater than zero: {factor!r}")
    return value


def scale_arguments(
    arguments: tuple[Any, ...], factor: float, positions: tuple[int, ...] | None = None
) -> tuple[Any, ...]:
    """Multiply integer arguments by ``factor``, truncating.

    With ``positions`` only those indexes are scaled; otherwise every int is.
    """

    scaled: list[Any] = []
    for index, arg in enumerate(arguments):
        # bool is an int subclass but never a size.
        is_size = isinstance(arg, int) and not isinstance(arg, bool)
        if is_size and (positions is None or index in positions):
            arg = int(arg * factor)
        scaled.append(arg)
    return tuple(scaled)


def _last_manipulation(image: AnyImage, registry: ManipulationRegistry) -> Manipulation:
    last_segment = image.variant.split(VARIANT_SEPARATOR)[-1]
    return parse_segment(last_segment, registry.variant_names())


def _replay(
    image: AnyImage,
    factor: float,
    target_width: int,
    target_height: int,
    service: TransformService,
    registry: ManipulationRegistry,
) -> Optional[AnyImage]:
    if not image.variant:
        return image

    base = _replay(image.base, factor, target_width, target_height, service, registry)
    if base is None:
        return None

    if base.width < target_width * factor or base.height < target_height * factor:
        logger.debug(
            "Replay stopped: %dx%d is smaller than %sx%s at factor %s",
            base.width,
            base.height,
            target_width * factor,
            target_height * factor,
            factor,
        )
        return None

    manipulation = _last_manipulation(image, registry)
    if manipulation.method == EXT_REWRITE_METHOD:
        if len(manipulation.arguments) < 2:
            raise MalformedVariantError(f"{EXT_REWRITE_METHOD} expects two arguments")
        return service.convert(base, manipulation.arguments[1])

    ref = registry.find(manipulation.method)
    positions = ref.scaled_positions if ref is not None else None
    arguments = scale_arguments(manipulation.arguments, factor, positions)
    return service.transform(base, manipulation.method, arguments)


def replay_manipulations(
    image: AnyImage,
    factor: float,
    target_width: int,
    target_height: int,
    service: TransformService,
    *,
    registry: ManipulationRegistry | None = None,
) -> Optional[AnyImage]:
    """Rebuild ``image`` with its size arguments multiplied by ``factor``.

    Returns the source unchanged if ``image`` has no manipulations, and ``None``
    if any intermediate image is too small to produce ``target * factor``
    pixels without upscaling.
    """

    if isinstance(factor, bool) or not isinstance(factor, (int, float)) or factor <= 0:
        raise InvalidFactorError(f"Factor must be a number greater than zero: {factor!r}")
    return _replay(
        image, float(factor), target_width, target_height, service, registry or DEFAULT_REGISTRY
    )


def generate_retina(
    image: AnyImage, factor: str, service: TransformService
) -> Optional[AnyImage]:
    """Build a higher-density variant of ``image`` that renders at its original size.

    Returns ``None`` when no suitable variant can be generated.
    """

    value = parse_factor(factor)
    width, height = image.width, image.height

    retina = replay_manipulations(image, value, width, height, service)
    if retina is None:
        logger.debug("No retina variant available for %s at %s", image.url, factor)
        return None

    if isinstance(retina, DerivedImage):
        return retina.with_render_size(width, height)
    return retina
