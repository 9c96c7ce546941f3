from pathlib import Path
from typing import Optional


class BaseSpaceError(Exception):
    """Base exception for all BaseSpace client errors."""
    pass


class TransportError(BaseSpaceError):
    """The request failed before any payload was available."""
    def __init__(
        self,
        stage: str,
        url: str,
        status: Optional[int] = None,
        cause: Optional[BaseException] = None,
    ):
        self.stage = stage
        self.url = url
        self.status = status
        self.cause = cause
        detail = f"HTTP {status}" if status is not None else repr(cause)
        super().__init__(f"Request to {url} failed during {stage}: {detail}")


class DecodingError(BaseSpaceError):
    """A response payload did not match the expected shape."""
    def __init__(self, path: str, reason: str, stage: Optional[str] = None):
        self.path = path
        self.reason = reason
        self.stage = stage
        where = f" during {stage}" if stage else ""
        super().__init__(f"Cannot decode '{path}'{where}: {reason}")

    def nested(self, prefix: str) -> "DecodingError":
        """Returns the same error with its path prefixed by ``prefix``."""
        path = f"{prefix}/{self.path}" if self.path else prefix
        return DecodingError(path=path, reason=self.reason, stage=self.stage)

    def during(self, stage: str) -> "DecodingError":
        return DecodingError(path=self.path, reason=self.reason, stage=stage)


class PaginationError(BaseSpaceError):
    """The lowest-indexed page of a paginated listing failed."""
    def __init__(self, page: int, cause: BaseSpaceError):
        self.page = page
        self.cause = cause
        super().__init__(f"Page {page} failed: {cause}")


class TransferError(BaseSpaceError):
    """Streaming a file to its destination failed."""
    def __init__(self, destination: Path, cause: BaseException):
        self.destination = destination
        self.cause = cause
        super().__init__(f"Transfer to {destination} failed: {cause!r}")
