"""Exceptions raised by vistamatch."""


class UnsupportedAlgorithm(ValueError):
    """Raised for an algorithm name that is unknown or missing from the OpenCV build."""

    def __init__(self, role: str, name):
        self.role = role
        self.name = name
        super().__init__(f"Unsupported {role} type: {name!r}")


class IncompatibleAlgorithms(ValueError):
    """Raised when a detector and descriptor cannot be used together."""
