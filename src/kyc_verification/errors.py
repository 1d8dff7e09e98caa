from typing import Optional

from .models import Status, VerificationOutcome


class VerificationError(Exception):
    """Raised exactly when a check ends with ``Status.ERROR``.

    The error outcome travels with the exception so callers that want the
    uniform result can still read ``exc.outcome``.
    """

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message
        self.outcome = VerificationOutcome(status=Status.ERROR)


class TransportError(VerificationError):
    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class CredentialError(TransportError):
    pass


class CapabilityError(VerificationError):
    pass


def status_check_unsupported(provider_name: str) -> CapabilityError:
    return CapabilityError(f"{provider_name} doesn't support a verification status check")


class RequestError(VerificationError):
    """The call was rejected before reaching the provider (bad caller input)."""
