"""Exception hierarchy for building and querying lookup tables."""

from typing import Optional, Sequence


class LookupTableError(Exception):
    """Base class for every lookupodd failure."""


class BuildError(LookupTableError, RuntimeError):
    """A table build failed; nothing written for the layer can be trusted."""

    def __init__(self, message: str, layer: Optional[int] = None,
                 codec: Optional[str] = None):
        self.layer = layer
        self.codec = codec
        prefix = []
        if layer is not None:
            prefix.append(f"layer {layer}")
        if codec is not None:
            prefix.append(codec)
        if prefix:
            message = f"{', '.join(prefix)}: {message}"
        super().__init__(message)


class FanoutAggregateError(BuildError):
    """Every worker failure from one fan-out encoder, reported together."""

    def __init__(self, layer: int, errors: Sequence[BaseException]):
        self.errors = list(errors)
        details = "; ".join(str(e) for e in self.errors)
        super().__init__(
            f"{len(self.errors)} fan-out worker(s) failed: {details}",
            layer=layer,
        )


class FormatError(LookupTableError, ValueError):
    """Persisted or decoded data does not match the section format."""

    def __init__(self, message: str, layer: Optional[int] = None,
                 position: Optional[int] = None):
        self.layer = layer
        self.position = position
        where = []
        if layer is not None:
            where.append(f"layer {layer}")
        if position is not None:
            where.append(f"position {position}")
        if where:
            message = f"{' '.join(where)}: {message}"
        super().__init__(message)


class UnknownCodecError(FormatError):
    """A codec name that is not in the registry."""

    def __init__(self, codec: str, layer: Optional[int] = None):
        self.codec = codec
        super().__init__(f"unsupported codec: {codec!r}", layer=layer)


class RangeError(LookupTableError, IndexError):
    """A lookup fell outside the data the table actually holds."""
