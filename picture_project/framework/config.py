from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from picture_project.framework.candidates import CandidateDescriptor
from picture_project.framework.errors import InvalidSourceConfigError, PictureError
from picture_project.framework.variants import Manipulation

_MANIPULATION_KEYS = {"method", "arguments", "descriptor"}
_DESCRIPTOR_KEYS = {"manipulations", "descriptor"}
_SOURCE_KEYS = {"media", "candidates"}


@dataclass(frozen=True)
class SourceSpec:
    media: str
    descriptors: tuple[CandidateDescriptor, ...]


@dataclass(frozen=True)
class StyleConfig:
    name: str
    default: tuple[CandidateDescriptor, ...] = ()
    sources: tuple[SourceSpec, ...] = ()


def _reject_unknown_keys(value: Mapping[str, Any], allowed: set[str], path: str) -> None:
    unknown = sorted(str(k) for k in value.keys() if k not in allowed)
    if unknown:
        raise InvalidSourceConfigError(f"Unknown keys at {path}: {', '.join(unknown)}")


def parse_manipulation(value: Any, path: str) -> Manipulation:
    if not isinstance(value, Mapping):
        raise InvalidSourceConfigError(f"Invalid manipulation at {path}: expected a mapping")
    _reject_unknown_keys(value, _MANIPULATION_KEYS, path)

    method = value.get("method")
    if not isinstance(method, str) or not method.strip():
        raise InvalidSourceConfigError(f"Invalid manipulation at {path}: method must be a non-empty string")

    arguments = value.get("arguments") or []
    if not isinstance(arguments, (list, tuple)):
        raise InvalidSourceConfigError(f"Invalid arguments at {path}: expected a list")
    try:
        return Manipulation(method, tuple(arguments))
    except TypeError as exc:
        raise InvalidSourceConfigError(f"Invalid arguments at {path}: {exc}") from exc


def parse_descriptor(value: Any, path: str) -> CandidateDescriptor:
    """Parse one srcset entry.

    Accepts either ``{manipulations: [...], descriptor: "2x"}`` or a single
    manipulation mapping ``{method, arguments, descriptor}``.
    """

    if not isinstance(value, Mapping):
        raise InvalidSourceConfigError(f"Invalid candidate at {path}: expected a mapping")

    descriptor = value.get("descriptor") or ""
    if not isinstance(descriptor, (str, int, float)) or isinstance(descriptor, bool):
        raise InvalidSourceConfigError(f"Invalid descriptor at {path}.descriptor")

    if "manipulations" in value:
        _reject_unknown_keys(value, _DESCRIPTOR_KEYS, path)
        raw = value.get("manipulations") or []
        if not isinstance(raw, (list, tuple)):
            raise InvalidSourceConfigError(f"Invalid manipulations at {path}: expected a list")
        manipulations = tuple(
            parse_manipulation(item, f"{path}.manipulations[{i}]") for i, item in enumerate(raw)
        )
    else:
        manipulations = (parse_manipulation(value, path),)

    return CandidateDescriptor(manipulations=manipulations, descriptor=str(descriptor))


def parse_descriptor_list(value: Any, path: str) -> tuple[CandidateDescriptor, ...]:
    if value is None:
        return ()
    if isinstance(value, Mapping):
        return (parse_descriptor(value, path),)
    if not isinstance(value, (list, tuple)):
        raise InvalidSourceConfigError(f"Invalid candidate list at {path}: expected a list or mapping")
    return tuple(parse_descriptor(item, f"{path}[{i}]") for i, item in enumerate(value))


def _parse_source(media: Any, value: Any, path: str) -> SourceSpec:
    positional = media is None or isinstance(media, int)

    if isinstance(value, Mapping) and "candidates" in value:
        _reject_unknown_keys(value, _SOURCE_KEYS, path)
        if positional:
            media = value.get("media") or ""
        descriptors = parse_descriptor_list(value.get("candidates"), f"{path}.candidates")
    elif isinstance(value, (list, tuple)):
        if positional:
            raise InvalidSourceConfigError(f"Positional source at {path} must be a mapping with media and candidates")
        descriptors = parse_descriptor_list(value, path)
    else:
        raise InvalidSourceConfigError(f"Invalid source config at {path}")

    if not isinstance(media, str):
        raise InvalidSourceConfigError(f"Invalid media condition at {path}: expected a string")
    return SourceSpec(media=media.strip(), descriptors=descriptors)


def parse_sources(value: Any, path: str) -> tuple[SourceSpec, ...]:
    if not value:
        return ()
    if isinstance(value, Mapping):
        return tuple(
            _parse_source(media, entry, f"{path}.{media}") for media, entry in value.items()
        )
    if isinstance(value, (list, tuple)):
        return tuple(_parse_source(None, entry, f"{path}[{i}]") for i, entry in enumerate(value))
    raise InvalidSourceConfigError(f"Invalid sources config at {path}: expected a mapping or list")


def parse_style(name: str, value: Any) -> StyleConfig:
    path = f"picture.styles.{name}"
    if not isinstance(value, Mapping):
        raise PictureError(f"Invalid style config at {path}: expected a mapping")
    unknown = sorted(str(k) for k in value.keys() if k not in {"default", "sources"})
    if unknown:
        raise PictureError(f"Unknown keys at {path}: {', '.join(unknown)}")

    return StyleConfig(
        name=name,
        default=parse_descriptor_list(value.get("default"), f"{path}.default"),
        sources=parse_sources(value.get("sources"), f"{path}.sources"),
    )


def parse_styles(value: Any) -> dict[str, StyleConfig]:
    """Parse a ``styles`` mapping, keyed by lower-cased style name."""

    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise PictureError("Invalid config for picture.styles: expected a mapping")

    styles: dict[str, StyleConfig] = {}
    for name, style_value in value.items():
        if not isinstance(name, str) or not name.strip():
            raise PictureError(f"Invalid style name: {name!r}")
        key = name.strip().lower()
        if key in styles:
            raise PictureError(f"Duplicate style name (case-insensitive): {name}")
        styles[key] = parse_style(name.strip(), style_value)
    return styles


def styles_from_config(cfg: Mapping[str, Any]) -> dict[str, StyleConfig]:
    picture_cfg = cfg.get("picture") or {}
    if not isinstance(picture_cfg, Mapping):
        raise PictureError("Invalid config for picture: expected a mapping")
    return parse_styles(picture_cfg.get("styles"))
