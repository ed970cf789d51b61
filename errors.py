"""Exceptions raised while decoding or encoding WAD graphics.

All of them are ``ValueError`` subclasses: every failure here is a local
validation failure of the input data, never a transient condition.
"""


class WadGfxError(ValueError):
    """Base class for WAD graphics errors."""


class MalformedAsset(WadGfxError):
    """The buffer is too short or an offset points outside of it."""


class UnsupportedField(WadGfxError):
    """A record field holds a value this asset family never uses."""


class UnresolvedPatch(WadGfxError):
    """A texture references a patch that cannot be found."""

    def __init__(self, patch_id: int, name: str = None):
        self.patch_id = patch_id
        self.name = name
        if name is None:
            msg = f"Unable to resolve patch #{patch_id}"
        else:
            msg = f"Unable to resolve patch #{patch_id} ({name})"
        super().__init__(msg)


class UnencodableRun(WadGfxError):
    """A run of opaque pixels cannot be written as a sprite post."""
