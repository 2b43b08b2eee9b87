"""Exception and advisory types raised while rendering a plot specification.

Every render failure is fatal to the single render call and carries enough
context (channel, column, geometry, option) to fix the plot specification. Advisory
notices are emitted as warnings and never stop a render.
"""

from __future__ import annotations


class PlotSpecError(ValueError):
    """Base class for render-time specification errors."""


class MissingColumnError(PlotSpecError):
    """A mapping channel or facet key references a column absent from the data.

    Attributes:
        channel (str): Channel name (``"x"``, ``"color"``...) or facet side
            (``"rows"``/``"cols"``) holding the reference.
        column (str): Column name that could not be resolved.
    """

    def __init__(self, channel: str, column: str, available=None):
        self.channel = channel
        self.column = column
        self.available = tuple(available) if available is not None else ()
        message = f"Channel '{channel}' references missing column '{column}'"
        if self.available:
            message += f"; available columns: {list(self.available)}"
        super().__init__(message)


class InvalidScaleError(PlotSpecError):
    """A scale transform is incompatible with the channel's data domain."""

    def __init__(self, channel: str, transform: str, detail: str, n_invalid: int = 0):
        self.channel = channel
        self.transform = transform
        self.n_invalid = int(n_invalid)
        super().__init__(
            f"Scale transform '{transform}' on channel '{channel}' is invalid: {detail}"
        )


class UnsupportedGeometryOptionError(PlotSpecError):
    """A geometry kind was given an option it does not accept."""

    def __init__(self, geom: str, option: str, accepted=None):
        self.geom = geom
        self.option = option
        self.accepted = tuple(sorted(accepted)) if accepted is not None else ()
        message = f"Geometry '{geom}' does not accept option '{option}'"
        if self.accepted:
            message += f"; accepted options: {list(self.accepted)}"
        super().__init__(message)


class MissingAestheticError(PlotSpecError):
    """A geometry requires a channel that neither the plot nor the layer maps."""

    def __init__(self, geom: str, channel: str):
        self.geom = geom
        self.channel = channel
        super().__init__(f"Geometry '{geom}' requires the '{channel}' aesthetic")


class UnsupportedStatError(PlotSpecError):
    """A statistical transform method or formula cannot be evaluated."""

    def __init__(self, method: str, detail: str):
        self.method = method
        super().__init__(f"Statistical method '{method}': {detail}")


class PlotAdvisory(UserWarning):
    """Non-fatal notice about a default that was filled in or a skipped group."""
