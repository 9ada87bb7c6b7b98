class FundiError(Exception):
    """Base class for errors raised inside the Fundi core."""


class ProviderError(FundiError):
    """A remote provider call failed (network, auth, malformed payload)."""

    def __init__(self, provider: str, message: str):
        super().__init__(f"{provider}: {message}")
        self.provider = provider


class ResponseParseError(ProviderError):
    """Provider payload could not be coerced into a StructuredResponse."""


class RouteValidationError(FundiError):
    """A suggested navigation path is not in the route whitelist."""

    def __init__(self, path: str):
        super().__init__(f"route not in whitelist: {path!r}")
        self.path = path
