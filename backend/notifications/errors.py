"""
Exception taxonomy for the notification engine.

A policy denial is not an exception: the eligibility engine returns a
PolicyDecision with allowed=False instead.
"""


class NotificationError(Exception):
    """Base class for notification engine errors."""


class ConfigurationError(NotificationError):
    """Unknown job or template id. The caller's mistake, never retried."""


class DuplicateJobError(ConfigurationError):
    """A job with the same name is already registered."""


class TransientDeliveryError(NotificationError):
    """Push gateway batch failure. Retried only by the next scheduled tick."""


class PersistenceError(NotificationError):
    """Storage failure. Returned to the immediate caller as a failed result."""
