class PokedexError(Exception):
    """Base class for errors raised by the service itself."""


class ConfigError(PokedexError):
    pass


class UpstreamUnavailable(PokedexError):
    """
    The upstream API did not answer with a success status.

    Carries the identifier (id or species name) that was requested so the
    failing call can be traced in logs and error details.
    """

    def __init__(self, identifier, reason: str):
        self.identifier = identifier
        self.reason = reason
        super().__init__(f"Failed to fetch data for {identifier}: {reason}")


class MalformedUpstreamData(PokedexError):
    pass


class StoreFailure(PokedexError):
    pass


class NotFound(PokedexError):
    def __init__(self, what: str):
        self.what = what
        super().__init__(f"{what} not found")
