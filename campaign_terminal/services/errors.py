"""
Service-layer exceptions.

Each carries the attributes the terminal needs to build a typed error report,
so handlers never have to parse messages.
"""


class TerminalServiceError(Exception):
    """Base for errors the dispatcher turns into typed reports."""


class UpstreamUnavailableError(TerminalServiceError):
    """The outreach platform could not be reached or answered with an error."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        detail: str | None = None,
        recoverable: bool = True,
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.detail = detail
        self.recoverable = recoverable


class EntityNotFoundError(TerminalServiceError):
    """A named campaign, tag or other entity does not exist."""

    def __init__(self, entity_type: str, query: str):
        super().__init__(f"{entity_type} not found: {query}")
        self.entity_type = entity_type
        self.query = query


class RateLimitedError(TerminalServiceError):
    """The upstream fetch budget for the current window is spent."""

    def __init__(self, wait_time_minutes: int, retry_after: int | None = None):
        super().__init__(f"Rate limit reached. Try again in {wait_time_minutes} minutes.")
        self.wait_time_minutes = wait_time_minutes
        self.retry_after = retry_after


class InvalidQueryError(TerminalServiceError):
    """The operator's input is missing a usable parameter (e.g. no email address)."""

    def __init__(self, title: str, message: str, usage: str):
        super().__init__(message)
        self.title = title
        self.message = message
        self.usage = usage
