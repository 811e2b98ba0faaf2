"""
Exceptions raised by the search layer.
Routers translate these into HTTP status codes.
"""


class QueryValidationError(ValueError):
    """A request parameter could not be turned into a query (client error)."""

    def __init__(self, param: str, value: str, reason: str):
        self.param = param
        self.value = value
        super().__init__(f"Invalid value for '{param}': {value!r} ({reason})")


class EngineError(Exception):
    """The search engine failed to answer a query."""


class EngineUnavailableError(EngineError):
    """The engine could not be reached or did not answer in time."""


class MalformedResponseError(EngineError):
    """The engine answered with something that is not a search response."""
