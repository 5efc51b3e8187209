"""
Request-level errors raised by the orchestrators and mapped to HTTP responses
in `tourassist.main`. Provider failures never surface here, they are absorbed
by the provider chain (see `tourassist.providers.base.ProviderFailure`).
"""


class InvalidInputError(Exception):
    """A required request field is missing or unusable. Always a 400."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class RateLimitExceededError(Exception):
    """The caller used up its chatbot quota for the current window."""

    def __init__(self, retry_after_ms: int, window_ms: int):
        super().__init__(f"rate limited, retry after {retry_after_ms}ms")
        self.retry_after_ms = retry_after_ms
        self.window_ms = window_ms


class AllEndpointsFailedError(Exception):
    """Every Overpass mirror failed for a place lookup."""

    def __init__(self, attempts: int, last_error: str = ""):
        super().__init__(f"All {attempts} Overpass endpoints failed: {last_error}")
        self.attempts = attempts
        self.last_error = last_error


class CityNotFoundError(Exception):
    def __init__(self, city: str):
        super().__init__(f"City not found: {city}")
        self.city = city


class WeatherUnavailableError(Exception):
    pass
