"""Custom exceptions for the Itemize jobs service."""


class ItemizeJobsError(Exception):
    """Base exception for the jobs service."""

    pass


class ValidationError(ItemizeJobsError):
    """Raised when stored data fails validation."""

    pass


class ConfigurationError(ItemizeJobsError):
    """Raised when configuration is invalid."""

    pass


class NotificationError(ItemizeJobsError):
    """Raised when an outbound notification cannot be delivered."""

    pass


class DeliveryNotRecordedError(ItemizeJobsError):
    """Raised when a notification went out but its bookkeeping could not be committed."""

    pass
