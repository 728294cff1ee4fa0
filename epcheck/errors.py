"""Exception types raised by the endpoint usage analyzer.

Only configuration-level problems are raised; per-file and per-endpoint
failures are recovered where they happen and never reach the caller.
"""


class EpcheckError(Exception):
    """Base class for fatal analyzer errors."""


class SpecError(EpcheckError):
    """The OpenAPI specification could not be loaded or parsed."""


class FilterError(EpcheckError):
    """The user-supplied endpoint filter is not a valid regular expression."""


class DiscoveryError(EpcheckError):
    """The scan root does not exist or is not a readable directory."""
