from __future__ import annotations

GENERATION_FAILURE_PREFIX = "Failed to generate route: "


class RouteSynthesisError(Exception):
    def __init__(self, message: str, status_code: int = 500) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.message = message


class RouteGenerationFailed(RouteSynthesisError):
    """Every generative model in the chain failed."""

    def __init__(self, message: str, status_code: int = 503) -> None:
        if not message.startswith(GENERATION_FAILURE_PREFIX):
            message = f"{GENERATION_FAILURE_PREFIX}{message}"
        super().__init__(message, status_code=status_code)


GenerationExhausted = RouteGenerationFailed


class InvalidRouteSkeleton(RouteSynthesisError):
    def __init__(self, message: str, status_code: int = 422) -> None:
        super().__init__(message, status_code=status_code)


class MalformedModelOutput(RouteSynthesisError):
    def __init__(self, message: str, status_code: int = 502) -> None:
        super().__init__(message, status_code=status_code)


class GeocodingFailed(RouteSynthesisError):
    def __init__(self, message: str, status_code: int = 502) -> None:
        super().__init__(message, status_code=status_code)


class RoutingFailed(RouteSynthesisError):
    def __init__(self, message: str, status_code: int = 502) -> None:
        super().__init__(message, status_code=status_code)


class InvalidTripRequest(RouteSynthesisError):
    def __init__(self, message: str, status_code: int = 400) -> None:
        super().__init__(message, status_code=status_code)
