# shared/errors.py
"""Exception taxonomy shared by the client and server roles."""


class BudgetSessionError(Exception):
    """Base class for anything that aborts an encrypted budget session."""


class TransportError(BudgetSessionError):
    """Short read/write, reset or closed peer on the framed channel.

    Frames carry no resynchronisation marker, so the session cannot continue.
    """


class ContextMismatchError(BudgetSessionError):
    """Received bytes do not validate against the locally rebuilt context."""


class ParameterError(BudgetSessionError):
    """The client's chosen encryption parameters failed to validate."""


class ScaleMismatchError(BudgetSessionError):
    """Fixed-point operands (or a result) carry an unexpected scale order."""


class PlaintextOverflowError(BudgetSessionError):
    """A scaled value would wrap around the plaintext modulus."""


class InputValidationError(ValueError):
    """User-supplied text is not a usable decimal amount."""
