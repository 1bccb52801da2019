"""Exception taxonomy for the refresh pipeline."""

from typing import Optional


class RefreshError(Exception):
    """Base class for all refresh pipeline errors."""


class ConfigError(RefreshError):
    """Missing credentials or unsupported run parameters, raised before a run record exists."""


class AuthError(RefreshError):
    """Token acquisition or refresh failed. Fatal to the run."""


class FetchError(RefreshError):
    """A listing or comment fetch failed after exhausting retries."""

    def __init__(self, message: str, status_code: Optional[int] = None, url: Optional[str] = None):
        self.message = message
        self.status_code = status_code
        self.url = url
        super().__init__(self.message)


class PersistenceError(RefreshError):
    """A store operation failed during the end-of-run flush. Fatal to the run."""


class JobStateError(RefreshError):
    """An illegal refresh run status transition was requested."""
