from __future__ import annotations

import dataclasses
import logging
from collections.abc import Iterable, Iterator, Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Callable, Optional

from picture_project.framework.errors import PictureError
from picture_project.framework.images import AnyImage, SourceImage
from picture_project.framework.transforms import CONVERT_METHOD, TransformService
from picture_project.framework.variants import Manipulation, VariantChain

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CandidateDescriptor:
    """Declarative srcset entry: manipulations to apply plus a label like "2x"."""

    manipulations: VariantChain = ()
    descriptor: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "manipulations", tuple(self.manipulations))
        object.__setattr__(self, "descriptor", str(self.descriptor or "").strip())


@dataclass(frozen=True)
class Candidate:
    manipulations: VariantChain
    image: Optional[AnyImage]
    descriptor: str = ""

    @property
    def present(self) -> bool:
        return self.image is not None


@dataclass(frozen=True)
class CandidateSet:
    """Ordered, immutable list of built candidates.

    Order determines srcset order. Failed candidates stay in the set (with
    ``image=None``) and are only dropped when rendering.
    """

    candidates: tuple[Candidate, ...] = ()

    def __iter__(self) -> Iterator[Candidate]:
        return iter(self.candidates)

    def __len__(self) -> int:
        return len(self.candidates)

    def __getitem__(self, index: int) -> Candidate:
        return self.candidates[index]

    def present(self) -> tuple[Candidate, ...]:
        return tuple(c for c in self.candidates if c.image is not None)

    def first_image(self) -> Optional[AnyImage]:
        for candidate in self.candidates:
            if candidate.image is not None:
                return candidate.image
        return None

    def manipulate(
        self, method: str, *arguments: Any, service: TransformService
    ) -> "CandidateSet":
        return broadcast_manipulation(self, method, arguments, service)


def _apply(service: TransformService, image: AnyImage, manipulation: Manipulation) -> Optional[AnyImage]:
    if manipulation.is_noop:
        return image
    if manipulation.method.lower() == CONVERT_METHOD.lower():
        if len(manipulation.arguments) != 1:
            raise PictureError(
                f"{CONVERT_METHOD} expects one argument, got {len(manipulation.arguments)}"
            )
        return service.convert(image, manipulation.arguments[0])
    return service.transform(image, manipulation.method, manipulation.arguments)


def build_candidate(
    source: SourceImage, descriptor: CandidateDescriptor, service: TransformService
) -> Candidate:
    image: Optional[AnyImage] = source
    for manipulation in descriptor.manipulations:
        image = _apply(service, image, manipulation)
        if image is None:
            logger.info(
                "Candidate %r skipped: %s produced no image for %s",
                descriptor.descriptor,
                manipulation.describe(),
                source.filename,
            )
            break

    return Candidate(
        manipulations=descriptor.manipulations,
        image=image,
        descriptor=descriptor.descriptor,
    )


def build_candidates(
    source: SourceImage,
    descriptors: Sequence[CandidateDescriptor],
    service: TransformService,
    *,
    max_workers: int | None = None,
) -> CandidateSet:
    """Build one candidate per descriptor, in descriptor order.

    A descriptor whose manipulations fail yields a candidate without an image;
    the remaining descriptors are still processed. With ``max_workers > 1``
    descriptors are built concurrently.
    """

    descriptors = tuple(descriptors)
    if max_workers is not None and max_workers > 1 and len(descriptors) > 1:
        with ThreadPoolExecutor(max_workers=max_workers) as pool:
            built = list(pool.map(lambda d: build_candidate(source, d, service), descriptors))
    else:
        built = [build_candidate(source, d, service) for d in descriptors]

    logger.debug(
        "Built %d/%d candidates for %s",
        sum(1 for c in built if c.image is not None),
        len(built),
        source.filename,
    )
    return CandidateSet(tuple(built))


def broadcast_manipulation(
    candidate_set: CandidateSet,
    method: str,
    arguments: Sequence[Any],
    service: TransformService,
) -> CandidateSet:
    """Apply one more manipulation to every present candidate.

    Returns a new set; candidates without an image are passed through as is.
    """

    manipulation = Manipulation(method, tuple(arguments))
    updated: list[Candidate] = []
    for candidate in candidate_set:
        if candidate.image is None:
            updated.append(candidate)
            continue
        updated.append(
            dataclasses.replace(
                candidate,
                image=_apply(service, candidate.image, manipulation),
                manipulations=candidate.manipulations + (manipulation,),
            )
        )
    return CandidateSet(tuple(updated))


@dataclass(frozen=True)
class RenderHooks:
    """Optional observers around candidate-string rendering.

    ``before`` receives the candidate set, ``after`` receives the set and the
    rendered entries. Neither can change the rendered value.
    """

    before: Optional[Callable[[CandidateSet], None]] = None
    after: Optional[Callable[[CandidateSet, tuple[str, ...]], None]] = None


def _notify(name: str, callback: Optional[Callable[..., None]], *args: Any) -> None:
    if callback is None:
        return
    try:
        callback(*args)
    except Exception:  # noqa: BLE001
        logger.exception("Render hook %s failed; continuing", name)


def candidate_entries(candidate_set: Iterable[Candidate]) -> tuple[str, ...]:
    entries: list[str] = []
    for candidate in candidate_set:
        if candidate.image is None:
            continue
        entry = candidate.image.url
        if candidate.descriptor:
            entry = f"{entry} {candidate.descriptor}"
        entries.append(entry)
    return tuple(entries)


def render_candidates(candidate_set: CandidateSet, hooks: RenderHooks | None = None) -> str:
    """Render a srcset value: ``"<url> <descriptor>"`` entries joined by ``", "``."""

    hooks = hooks or RenderHooks()
    _notify("before", hooks.before, candidate_set)
    entries = candidate_entries(candidate_set)
    _notify("after", hooks.after, candidate_set, entries)
    return ", ".join(entries)
