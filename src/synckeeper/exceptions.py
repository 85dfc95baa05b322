"""Custom exceptions for synckeeper package."""


class SynckeeperError(Exception):
    """Base exception class for all synckeeper errors."""


class RegistrationError(SynckeeperError):
    """Raised when a credential registration request is malformed.

    The registration endpoint reports this as a client error. Nothing is
    written to the session registry and no keepalive task is started.
    """


class MalformedResponseError(SynckeeperError):
    """Raised when a synccheck response body does not have the expected shape.

    Attributes:
        body: The raw response body that failed to parse.
    """

    def __init__(self, message: str, body: str = "") -> None:
        super().__init__(message)
        self.body = body
