"""Common exceptions for the catcher package."""


class CatcherError(RuntimeError):
    """Base class for errors raised by the cache itself."""


class InvalidStateError(CatcherError):
    """Raised when cached data is read while the cache holds none."""

    def __init__(self, state: str):
        super().__init__(f"Cannot get data: {state}")
        self.state = state
