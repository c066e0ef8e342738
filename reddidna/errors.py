"""Error hierarchy shared by the service client, orchestrator and exporter."""


class ReddidnaError(Exception):
    """Base class; ``str(exc)`` is always safe to show to the user."""


class IdentityError(ReddidnaError, ValueError):
    """Input could not be turned into a submittable Reddit identity."""


class ServiceUnavailableError(ReddidnaError):
    """The persona service could not be reached (connect error, timeout)."""

    def __init__(self, message: str = "Could not reach the persona service. Check your connection and try again."):
        super().__init__(message)


class ServiceError(ReddidnaError):
    """The persona service answered with a non-2xx status."""

    def __init__(self, message: str, status_code: int):
        super().__init__(message)
        self.status_code = status_code


class MalformedReportError(ReddidnaError):
    """A 2xx response whose body is not a readable persona report."""

    def __init__(self, message: str = "The persona service returned a report that could not be read."):
        super().__init__(message)


class ExportError(ReddidnaError):
    """The report download endpoint failed."""
