from __future__ import annotations

import json
import logging
from typing import Any

from picture_project.foundation.config_io import load_config
from picture_project.framework.config import styles_from_config
from picture_project.framework.images import load_source_image
from picture_project.framework.picture import Picture, available_methods
from picture_project.framework.replay import generate_retina
from picture_project.framework.transforms import CONVERT_METHOD, PillowTransformService
from picture_project.framework.variants import parse_variant

logger = logging.getLogger(__name__)


def render_picture(
    image_path: str,
    style: str,
    *,
    config_path: str | None = None,
    url_base: str = "",
    target_format: str | None = None,
    max_workers: int | None = None,
) -> dict[str, Any]:
    cfg, meta = load_config(config_path=config_path)
    logger.debug("Config loaded (mode=%s, paths=%s)", meta["mode"], meta["paths"])

    service = PillowTransformService()
    source = load_source_image(image_path, url_base=url_base)
    picture = Picture(source, style, styles_from_config(cfg), service, max_workers=max_workers)

    descriptor = picture.descriptor()
    if target_format:
        descriptor = descriptor.manipulate(CONVERT_METHOD, target_format, service=service)
    return descriptor.to_dict()


def render_retina(
    image_path: str,
    variant: str,
    *,
    factor: str = "2x",
    url_base: str = "",
) -> dict[str, Any] | None:
    service = PillowTransformService()
    source = load_source_image(image_path, url_base=url_base)

    derived = service.apply_chain(source, parse_variant(variant))
    if derived is None:
        logger.warning("Variant %s could not be rebuilt from %s", variant, image_path)
        return None

    retina = generate_retina(derived, factor, service)
    if retina is None:
        return None
    return {
        "src": retina.url,
        "width": getattr(retina, "render_width", None) or retina.width,
        "height": getattr(retina, "render_height", None) or retina.height,
        "pixel_width": retina.width,
        "pixel_height": retina.height,
    }


def list_styles(*, config_path: str | None = None) -> None:
    cfg, _meta = load_config(config_path=config_path)
    for name in available_methods(styles_from_config(cfg)):
        print(name)


def list_manipulations() -> None:
    service = PillowTransformService()
    for row in service.registry.describe():
        print(f"{row['name']}: {row['doc'] or ''}")


def dump_json(payload: Any) -> str:
    return json.dumps(payload, indent=2, ensure_ascii=False)
