"""Variant identifiers: the encoded record of how a derived image was made.

A variant identifier is a list of segments joined by ``_``. Each segment is a
manipulation method name followed by the URL-safe base64 of its JSON-encoded
argument list, e.g. ``FillWzgwMCw0NTBd`` for ``Fill(800, 450)``. The base64
alphabet used here swaps ``_`` for ``~`` so segments never contain the
separator.
"""

from __future__ import annotations

import base64
import binascii
import json
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Any

from picture_project.framework.errors import MalformedVariantError

VARIANT_SEPARATOR = "_"
NOOP_METHOD = "noop"

_SCALAR_TYPES = (str, int, float, bool, type(None))


@dataclass(frozen=True)
class Manipulation:
    method: str
    arguments: tuple[Any, ...] = ()

    def __post_init__(self) -> None:
        if not isinstance(self.method, str) or not self.method.strip():
            raise TypeError("Manipulation.method must be a non-empty string")
        object.__setattr__(self, "method", self.method.strip())

        arguments = tuple(self.arguments)
        for index, value in enumerate(arguments):
            if not isinstance(value, _SCALAR_TYPES):
                raise TypeError(
                    f"Manipulation argument {index} for {self.method} must be a scalar, "
                    f"got {type(value).__name__}"
                )
        object.__setattr__(self, "arguments", arguments)

    @property
    def is_noop(self) -> bool:
        return self.method.lower() == NOOP_METHOD

    def describe(self) -> str:
        args = ", ".join(repr(arg) for arg in self.arguments)
        return f"{self.method}({args})"


VariantChain = tuple[Manipulation, ...]


def _encode_arguments(arguments: Sequence[Any]) -> str:
    payload = json.dumps(list(arguments), separators=(",", ":"))
    encoded = base64.urlsafe_b64encode(payload.encode("utf-8")).decode("ascii")
    return encoded.rstrip("=").replace("_", "~")


def _decode_arguments(encoded: str, *, segment: str) -> tuple[Any, ...]:
    if not encoded:
        raise MalformedVariantError(f"Variant segment has no encoded arguments: {segment!r}")

    raw = encoded.replace("~", "_")
    raw += "=" * (-len(raw) % 4)
    try:
        payload = base64.urlsafe_b64decode(raw.encode("ascii")).decode("utf-8")
        arguments = json.loads(payload)
    except (binascii.Error, UnicodeError, ValueError) as exc:
        raise MalformedVariantError(f"Cannot decode variant segment {segment!r}: {exc}") from exc

    if not isinstance(arguments, list):
        raise MalformedVariantError(
            f"Variant segment {segment!r} does not encode an argument list"
        )
    for value in arguments:
        if not isinstance(value, _SCALAR_TYPES):
            raise MalformedVariantError(
                f"Variant segment {segment!r} contains a non-scalar argument: {value!r}"
            )
    return tuple(arguments)


def encode_manipulation(manipulation: Manipulation) -> str:
    return manipulation.method + _encode_arguments(manipulation.arguments)


def encode_variant(chain: Iterable[Manipulation]) -> str:
    return VARIANT_SEPARATOR.join(encode_manipulation(m) for m in chain)


def _default_variant_names() -> tuple[str, ...]:
    from picture_project.framework.transforms import DEFAULT_REGISTRY

    return DEFAULT_REGISTRY.variant_names()


def parse_segment(segment: str, known_methods: Iterable[str]) -> Manipulation:
    """Decode one variant segment into a manipulation.

    Method names are matched case-insensitively; the longest known name that
    leaves a decodable argument payload wins, and the canonical spelling of the
    name is used in the result.
    """

    if not segment:
        raise MalformedVariantError("Empty variant segment")

    lowered = segment.lower()
    candidates = sorted(
        (name for name in known_methods if lowered.startswith(name.lower())),
        key=len,
        reverse=True,
    )
    if not candidates:
        raise MalformedVariantError(f"Unknown manipulation in variant segment {segment!r}")

    last_error: MalformedVariantError | None = None
    for name in candidates:
        try:
            arguments = _decode_arguments(segment[len(name):], segment=segment)
        except MalformedVariantError as exc:
            last_error = exc
            continue
        return Manipulation(name, arguments)

    raise last_error or MalformedVariantError(f"Cannot decode variant segment {segment!r}")


def parse_variant(identifier: str, known_methods: Iterable[str] | None = None) -> VariantChain:
    """Decode a variant identifier into its manipulations, oldest first."""

    if identifier is None:
        return ()
    if not isinstance(identifier, str):
        raise MalformedVariantError(
            f"Variant identifier must be a string, got {type(identifier).__name__}"
        )
    identifier = identifier.strip()
    if not identifier:
        return ()

    names = tuple(known_methods) if known_methods is not None else _default_variant_names()
    return tuple(parse_segment(segment, names) for segment in identifier.split(VARIANT_SEPARATOR))
