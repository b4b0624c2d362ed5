"""
Relay error taxonomy.

Every error here is recovered at the router: the message that caused
it is logged and dropped. None of them stops the process.
"""


class RelayError(Exception):
    """Base class for recoverable relay errors."""


class DecodeError(RelayError):
    """Malformed or tampered secure frame."""


class EncodeError(RelayError):
    """Payload could not be wrapped in a secure frame."""


class ParseError(RelayError):
    """Non-numeric or structurally invalid payload."""


class AuthError(RelayError):
    """Credential mismatch or malformed credential payload."""


class TransportError(RelayError):
    """Downlink send failure."""
