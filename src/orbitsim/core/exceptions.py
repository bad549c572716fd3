"""
Error kinds raised by the orbit simulator.

Each exception also derives from the built-in it refines (``ValueError``,
``KeyError`` ...) so callers that only know the standard hierarchy still
catch them.  Dropping below the primary's surface is not an error:
drag degrades to zero there and nothing is raised.
"""


class OrbitSimError(Exception):
    """Base class for all simulator errors."""


class InvalidBodyError(OrbitSimError, ValueError):
    """Body rejected at creation: mass <= 0 or non-finite position/velocity."""


class CoincidentBodiesError(OrbitSimError, ArithmeticError):
    """Primary and secondary share a position, so gravity is undefined."""

    def __init__(self, primary_name: str, secondary_name: str) -> None:
        super().__init__(
            f"Bodies '{primary_name}' and '{secondary_name}' are coincident; "
            "gravitational force is undefined at zero separation."
        )
        self.primary_name = primary_name
        self.secondary_name = secondary_name


class InvalidTimestepError(OrbitSimError, ValueError):
    """Time step is negative or non-finite."""


class UnknownBodyError(OrbitSimError, KeyError):
    """Handle does not refer to a body in the registry."""

    def __str__(self) -> str:
        # KeyError quotes its argument; keep the message readable.
        return str(self.args[0]) if self.args else ""


class AssetNotReadyError(OrbitSimError, RuntimeError):
    """A body's visual asset is still pending or failed to load."""


class ConfigurationError(OrbitSimError, ValueError):
    """A configuration value is missing, malformed or out of range."""
