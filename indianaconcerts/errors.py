class ConcertsError(Exception):
    """Base class for errors that abort an aggregation run."""


class ConfigurationError(ConcertsError):
    """A required setting (usually the API key) is missing."""


class UpstreamError(ConcertsError):
    """A listing source answered with a non-success HTTP status."""

    def __init__(self, source: str, status_code: int, body: str = "", url: str = ""):
        self.source = source
        self.status_code = status_code
        self.body = body
        self.url = url
        message = f"{source} request failed: {status_code}"
        if body:
            message = f"{message} {body}"
        super().__init__(message)
