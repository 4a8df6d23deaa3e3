"""Terminal outcomes of a relay invocation.

Every stage of the pipeline signals an early exit by raising one of these.
The pipeline maps them to a status code and a plaintext reason, so each
outcome stays distinguishable from the response alone.
"""

from __future__ import annotations


class RelayError(Exception):
    status: int = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ConfigurationError(RelayError):
    """The deployment is missing something it needs, e.g. the webhook secret."""

    status = 500


class AuthenticationFailure(RelayError):
    status = 401


class InvalidPayload(RelayError):
    status = 400


class FilteredOut(RelayError):
    """A guard rejected the event. Not a failure: answered with 200."""

    status = 200


class UpstreamNotFound(RelayError):
    status = 404


class UpstreamFailure(RelayError):
    """GitHub or Slack could not be reached or answered with an error."""

    status = 500
