class FlowPlannerError(Exception):
    """Base class for errors that the HTTP layer renders as ``{"error": ...}``."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ConfigurationError(FlowPlannerError):
    """A required credential or setting is missing. Never degraded silently."""

    status_code = 500


class CompletionError(FlowPlannerError):
    """The text-completion provider failed for a reason other than throttling."""

    status_code = 502


class RateLimitedError(CompletionError):
    status_code = 429


class QuotaExhaustedError(CompletionError):
    status_code = 402


class FlowInvariantError(FlowPlannerError):
    """A mutation produced a flow whose stops and totals disagree."""

    status_code = 500
