class FaviconError(Exception):
    """Base class for errors raised by the favicon pipelines."""


class InvalidInput(FaviconError):
    """User-correctable input problem (missing or malformed field)."""


class ResolutionFailed(InvalidInput):
    pass


class Unreachable(FaviconError):
    """No HTTP response could be obtained for a URL."""

    def __init__(self, url: str, reason: str):
        super().__init__(f"{url} unreachable: {reason}")
        self.url = url
        self.reason = reason


class FetchFailed(FaviconError):
    """Every byte-retrieval strategy failed; `trail` keeps each stage's reason."""

    def __init__(self, trail: list[str]):
        self.trail = list(trail)
        super().__init__("Unable to fetch icon:\n" + "\n".join(self.trail))


class DecodeFailed(FaviconError):
    pass


class EncodingFailed(FaviconError):
    pass
