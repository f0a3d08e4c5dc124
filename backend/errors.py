"""Alert engine exceptions."""


class InvalidAxisError(ValueError):
    """Raised when axis validation is enabled and a sample names an unknown axis."""

    def __init__(self, axis: str, allowed):
        self.axis = axis
        self.allowed = tuple(allowed)
        super().__init__(f"Unknown axis {axis!r}; expected one of {', '.join(self.allowed)}")


class InvalidThresholdError(ValueError):
    """Raised when a requested alert threshold falls outside the adjustable range."""

    def __init__(self, threshold: float, minimum: float, maximum: float):
        self.threshold = threshold
        super().__init__(f"Threshold {threshold} g outside allowed range [{minimum}, {maximum}]")
