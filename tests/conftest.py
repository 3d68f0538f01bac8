from __future__ import annotations

import logging
from typing import Any, Optional, Sequence

import pytest
from PIL import Image

from picture_project.framework.images import AnyImage, DerivedImage, SourceImage
from picture_project.framework.transforms import PillowTransformService


def make_source(width: int = 400, height: int = 300, *, filename: str = "photo.png", url_base: str = "/assets") -> SourceImage:
    return SourceImage(
        filename=filename,
        width=width,
        height=height,
        pixels=Image.new("RGB", (width, height), color=(200, 40, 40)),
        url_base=url_base,
    )


class RecordingService:
    """Wraps the Pillow service and records every call."""

    def __init__(self) -> None:
        self.inner = PillowTransformService()
        self.calls: list[tuple[str, tuple[Any, ...]]] = []

    def transform(self, image: AnyImage, method: str, arguments: Sequence[Any]) -> Optional[DerivedImage]:
        self.calls.append((method, tuple(arguments)))
        return self.inner.transform(image, method, arguments)

    def convert(self, image: AnyImage, target_format: str) -> Optional[DerivedImage]:
        self.calls.append(("convert", (target_format,)))
        return self.inner.convert(image, target_format)


@pytest.fixture
def source() -> SourceImage:
    return make_source()


@pytest.fixture
def service() -> PillowTransformService:
    return PillowTransformService()


@pytest.fixture
def recording_service() -> RecordingService:
    return RecordingService()


@pytest.fixture(autouse=True)
def _reset_package_logger():
    yield
    logger = logging.getLogger("picture_project")
    logger.handlers.clear()
    logger.setLevel(logging.NOTSET)
    logger.propagate = True
