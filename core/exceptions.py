"""Bot Exception Hierarchy

Classifies failures by how callers should react:
- ValueError subclasses: bad input, reported to the caller, never retried
- RemoteEvaluationError: page-side failure, propagated as-is
- InteractionRetryError: transient UI failures that outlived their retries
- DogPileDetected: fatal supervisory condition, the process should restart
"""


class HubsBotError(RuntimeError):
    """Base class for bot runtime failures."""


class NameValidationError(ValueError):
    """Raised when a display name does not match the allowed pattern."""

    def __init__(self, name: str):
        super().__init__(f"Name pattern not valid: {name!r}")
        self.name = name


class RoomUrlError(ValueError):
    """Raised when a room URL is not an absolute http(s) URL."""

    def __init__(self, url: str):
        super().__init__(f"Invalid room URL: {url!r}")
        self.url = url


class RemoteArgumentError(TypeError):
    """Raised when an argument for the page cannot be serialized to JSON.

    Functions and other host objects never cross into the page.
    """


class RemoteEvaluationError(HubsBotError):
    """Raised when script evaluated inside the page throws.

    Carries the page-side message so callers see what the page saw.
    """

    def __init__(self, method: str, message: str):
        super().__init__(message)
        self.method = method

    def __str__(self):
        return f"[{self.method}] {super().__str__()}"


class InteractionRetryError(HubsBotError):
    """Raised when a page interaction keeps failing after every retry."""

    def __init__(self, action: str, attempts: int, last_error: Exception):
        super().__init__(f"{action} failed after {attempts} attempts: {last_error}")
        self.action = action
        self.attempts = attempts
        self.last_error = last_error


class DogPileDetected(HubsBotError):
    """Raised when peers are connected but no avatar is rendered locally.

    This state does not heal; the supervisor is expected to restart the bot.
    """

    def __init__(self, sample):
        super().__init__(
            f"Detected avatar dog-pile: {sample.connection_count} connections, "
            f"{sample.avatar_count} avatars"
        )
        self.sample = sample
