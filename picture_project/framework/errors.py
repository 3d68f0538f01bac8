from __future__ import annotations


class PictureError(ValueError):
    """Base class for structural and configuration errors."""


class InvalidFactorError(PictureError):
    """Raised for malformed or non-positive scale factors."""


class MalformedVariantError(PictureError):
    """Raised when a variant identifier segment cannot be decoded."""


class MissingDefaultConfigError(PictureError):
    """Raised when a picture style has no default image config."""


class InvalidSourceConfigError(PictureError):
    """Raised when a picture source entry has an unusable shape."""


class UnknownStyleError(PictureError):
    """Raised when a requested picture style is not configured."""


class UnknownManipulationError(PictureError):
    """Raised when a manipulation method is not registered."""
