"""Assemble a responsive picture from a source image and a style.

A picture is a default image (with its own srcset) plus an ordered list of
``<source>`` groups, each keyed by a media condition. Markup is left to the
caller; ``PictureDescriptor.to_dict`` exposes everything a template needs.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Optional

from picture_project.framework.candidates import (
    CandidateDescriptor,
    CandidateSet,
    RenderHooks,
    broadcast_manipulation,
    build_candidates,
    render_candidates,
)
from picture_project.framework.config import SourceSpec, StyleConfig
from picture_project.framework.errors import MissingDefaultConfigError, UnknownStyleError
from picture_project.framework.images import AnyImage, SourceImage
from picture_project.framework.transforms import TransformService
from picture_project.framework.variants import Manipulation

logger = logging.getLogger(__name__)

RETINA_METHOD = "retina"


@dataclass(frozen=True)
class SourceGroup:
    media: str
    candidates: CandidateSet

    def srcset(self, hooks: RenderHooks | None = None) -> str:
        return render_candidates(self.candidates, hooks)


@dataclass(frozen=True)
class PictureDescriptor:
    default_image: AnyImage
    default_candidates: CandidateSet
    source_groups: tuple[SourceGroup, ...] = ()
    style: str | None = None
    # Used when a render call passes no hooks of its own.
    hooks: RenderHooks | None = field(default=None, compare=False)

    def srcset(self, hooks: RenderHooks | None = None) -> str:
        return render_candidates(self.default_candidates, hooks or self.hooks)

    def manipulate(self, method: str, *arguments: Any, service: TransformService) -> "PictureDescriptor":
        """Apply one more manipulation to every candidate, e.g. ``Convert("webp")``."""

        default_candidates = broadcast_manipulation(self.default_candidates, method, arguments, service)
        return PictureDescriptor(
            default_image=default_candidates.first_image() or self.default_image,
            default_candidates=default_candidates,
            source_groups=tuple(
                SourceGroup(
                    media=group.media,
                    candidates=broadcast_manipulation(group.candidates, method, arguments, service),
                )
                for group in self.source_groups
            ),
            style=self.style,
            hooks=self.hooks,
        )

    def to_dict(self, hooks: RenderHooks | None = None) -> dict[str, Any]:
        hooks = hooks or self.hooks
        image = self.default_image
        return {
            "style": self.style,
            "img": {
                "src": image.url,
                "width": getattr(image, "render_width", None) or image.width,
                "height": getattr(image, "render_height", None) or image.height,
                "srcset": self.srcset(hooks),
            },
            "sources": [
                {"media": group.media, "srcset": group.srcset(hooks)} for group in self.source_groups
            ],
        }


def _as_descriptors(
    default: Sequence[CandidateDescriptor] | Sequence[Manipulation] | None,
) -> tuple[CandidateDescriptor, ...]:
    if not default:
        return ()
    items = tuple(default)
    if all(isinstance(item, Manipulation) for item in items):
        return (CandidateDescriptor(manipulations=items),)
    return items  # type: ignore[return-value]


def assemble_picture(
    source: SourceImage,
    default: Sequence[CandidateDescriptor] | Sequence[Manipulation] | None,
    groups: Sequence[SourceSpec],
    service: TransformService,
    hooks: RenderHooks | None = None,
    *,
    style: str | None = None,
    max_workers: int | None = None,
) -> PictureDescriptor:
    """Build the default candidates and every source group for ``source``.

    ``default`` is either a list of candidate descriptors or a bare variant chain.
    ``hooks`` become the descriptor's default render hooks.
    Raises ``MissingDefaultConfigError`` when it is empty; nothing is built in
    that case.
    """

    descriptors = _as_descriptors(default)
    if not descriptors:
        label = f"style “{style}”" if style else "picture"
        raise MissingDefaultConfigError(f"No default config set for {label}")

    default_candidates = build_candidates(source, descriptors, service, max_workers=max_workers)
    default_image = default_candidates.first_image()
    if default_image is None:
        logger.warning("No default candidate could be built for %s; using the source image", source.filename)
        default_image = source

    source_groups = tuple(
        SourceGroup(
            media=group.media,
            candidates=build_candidates(source, group.descriptors, service, max_workers=max_workers),
        )
        for group in groups
    )

    logger.info(
        "Assembled picture for %s (style=%s, sources=%d)",
        source.filename,
        style or "-",
        len(source_groups),
    )
    return PictureDescriptor(
        default_image=default_image,
        default_candidates=default_candidates,
        source_groups=source_groups,
        style=style,
        hooks=hooks,
    )


def available_methods(styles: Mapping[str, StyleConfig]) -> tuple[str, ...]:
    """Names callable on an image: every configured style plus ``retina``."""

    return tuple(sorted(name.lower() for name in styles)) + (RETINA_METHOD,)


class Picture:
    """A source image rendered with one configured style."""

    def __init__(
        self,
        image: SourceImage,
        style: str,
        styles: Mapping[str, StyleConfig],
        service: TransformService,
        *,
        hooks: RenderHooks | None = None,
        max_workers: int | None = None,
    ) -> None:
        self.image = image
        self.style = (style or "").strip().lower()
        self.service = service
        self.hooks = hooks
        self.max_workers = max_workers
        self._descriptor: PictureDescriptor | None = None

        lowered = {name.lower(): cfg for name, cfg in styles.items()}
        style_config: Optional[StyleConfig] = lowered.get(self.style)
        if style_config is None:
            available = ", ".join(sorted(lowered)) or "<none>"
            raise UnknownStyleError(f"Unknown picture style: {style} (available: {available})")
        self.style_config = style_config

    def descriptor(self) -> PictureDescriptor:
        """Build the picture once; later calls return the same descriptor."""

        if self._descriptor is None:
            self._descriptor = assemble_picture(
                self.image,
                self.style_config.default,
                self.style_config.sources,
                self.service,
                self.hooks,
                style=self.style_config.name,
                max_workers=self.max_workers,
            )
        return self._descriptor

    def default_image(self) -> AnyImage:
        return self.descriptor().default_image

    def sources(self) -> tuple[SourceGroup, ...]:
        return self.descriptor().source_groups
