"""Service-layer exceptions raised on write paths.

Read paths degrade to empty or ``None`` results instead of raising; the
linking, sign-up and transfer flows raise these so the API layer can show
an actionable error.
"""


class ServiceError(Exception):
    """Base class for service-layer failures."""

    pass


class CustomerValidationError(ServiceError):
    """Customer identity fields failed local validation."""

    def __init__(self, errors: list[str]):
        self.errors = errors
        super().__init__(f"Invalid customer data: {', '.join(errors)}")


class BankLinkNotFoundError(ServiceError):
    """No BankLink exists for the given id."""

    pass


class LinkingError(ServiceError):
    """Linking a bank account (or rotating its credential) failed."""

    def __init__(self, message: str, step: str = ""):
        self.step = step
        super().__init__(message)


class UserCreationError(ServiceError):
    """Sign-up could not complete."""

    pass


class TransferError(ServiceError):
    """A money movement request could not be completed."""

    pass
