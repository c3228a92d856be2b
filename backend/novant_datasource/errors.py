"""Error types raised while answering a data source query."""


class DatasourceError(Exception):
    """Base class for every failure that ends a single query."""


class ValidationError(DatasourceError):
    """A required query parameter is missing or malformed."""


class TransportError(DatasourceError):
    """The upstream API could not be reached (connection, timeout)."""


class UpstreamError(DatasourceError):
    """The upstream API answered with a non-success status."""

    def __init__(self, message: str, status_code: int = 0):
        super().__init__(message)
        self.status_code = status_code


class DecodeError(DatasourceError):
    """The upstream body is not JSON or does not have the expected shape."""


class ParseError(DatasourceError):
    """A trend row carries a timestamp that is not RFC3339."""


class MissingPointError(DatasourceError):
    def __init__(self, point_id: str):
        super().__init__(f"Point not found: {point_id}")
        self.point_id = point_id


class CancelledError(DatasourceError):
    """The caller aborted the request before the query completed."""
