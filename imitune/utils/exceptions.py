"""Custom exception definitions for ImiTune."""

from typing import Optional


class ImituneError(Exception):
    """Base exception class for ImiTune errors."""

    pass


class ConfigurationError(ImituneError):
    """Raised when configuration is invalid or cannot be loaded/saved."""

    pass


class DeviceUnavailable(ImituneError):
    """Raised when no usable capture device or stream can be obtained."""

    pass


class InvalidStateError(ImituneError):
    """Raised when a session operation is called from the wrong state."""

    pass


class DecodeError(ImituneError):
    """Raised when captured audio is empty or cannot be decoded."""

    pass


class InferenceError(ImituneError):
    """Raised when the inference engine fails to produce an embedding."""

    pass


class EngineUnavailable(InferenceError):
    """Raised by an engine for transient unavailability (eligible for one retry)."""

    pass


class NetworkError(ImituneError):
    """Raised when a search or feedback call fails."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code
