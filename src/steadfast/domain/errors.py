"""Error kinds raised by precondition checks."""


class ArgumentError(ValueError):
    """A function was called with an invalid argument."""


class DimensionMismatch(ValueError):
    """Objects that must share dimensions (lengths, shapes) do not."""
