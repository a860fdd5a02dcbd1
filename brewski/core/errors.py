from __future__ import annotations


class BrewskiError(Exception):
    pass


class ConfigurationError(BrewskiError):
    pass


class DeviceReadError(BrewskiError):
    pass


class OutputChainError(BrewskiError):
    """Raised once per dispatch with every sink failure collected in ``errors``."""

    def __init__(self, errors: list[Exception]) -> None:
        self.errors = list(errors)
        detail = "; ".join(f"{type(e).__name__}: {e}" for e in self.errors)
        super().__init__(f"{len(self.errors)} output(s) failed: {detail}")
