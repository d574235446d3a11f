"""
Where: services/authgate/exceptions.py
What: Exception types raised by the authorization gate.
Why: Let the middleware tell startup misconfiguration apart from per-request backend failures.
"""


class ConfigurationError(Exception):
    """Raised at startup when the gate can neither run nor be disabled."""

    pass


class BackendError(Exception):
    """Base exception for failed round trips to the wwwhisper backend."""

    # Plain-text body sent to the client with the 500 response.
    message = "Request to wwwhisper failed"

    def __init__(self, cause: Exception):
        self.cause = cause
        super().__init__(f"{self.message}: {cause}")


class AuthQueryError(BackendError):
    """The is-authorized query could not be completed."""

    message = "Auth request failed"


class ProxyRequestError(BackendError):
    """A request proxied to the backend could not be completed."""

    message = "Request to wwwhisper failed"
