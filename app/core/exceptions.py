"""Service-level exceptions for the provisioning pipeline."""

from typing import Optional


class ProvisioningError(Exception):
    """Base class for errors raised by provisioning services."""


class IdentityServiceError(ProvisioningError):
    """The identity admin API rejected a request or could not be reached."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class EmailDeliveryError(ProvisioningError):
    """The email provider did not accept a message."""


class SpreadsheetError(ProvisioningError):
    """An uploaded file could not be read as a spreadsheet."""


class NotFoundError(ProvisioningError):
    """A requested record does not exist."""
