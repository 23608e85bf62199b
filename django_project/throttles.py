"""Custom DRF throttle classes for rate limiting API endpoints."""

from rest_framework.throttling import UserRateThrottle


class ApproachReadThrottle(UserRateThrottle):
    """Per-user rate limiting for reading approaches and quota usage.

    Listing, detail and usage lookups are cheap but are polled by the editor
    while a user types, so they get their own bucket separate from the
    global user throttle.

    Rate: 60 requests per minute per user
    """

    scope = "approach_read"


class ApproachWriteThrottle(UserRateThrottle):
    """Stricter rate limiting for approach create/update/delete operations.

    Each write rewrites the user's whole approach document, so rapid writes
    are both expensive and the main source of version conflicts.

    Rate: 10 requests per minute per user
    """

    scope = "approach_write"
