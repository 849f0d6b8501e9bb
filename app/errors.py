"""
Error taxonomy shared by the request validators, the gateways and the
HTTP boundary. Every error carries the HTTP status it maps to and a short
message that is safe to show to the caller.
"""


class AppError(Exception):
    status_code = 500
    default_message = "An error occurred while processing your request"

    def __init__(self, message=None, details=None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message
        self.details = details

    @property
    def error_class(self):
        return type(self).__name__

    def to_dict(self):
        body = {"error": self.message, "error_class": self.error_class}
        if self.details is not None:
            body["details"] = self.details
        return body


class ValidationError(AppError):
    status_code = 400
    default_message = "Invalid request"


class AuthenticationError(AppError):
    status_code = 401
    default_message = "User authentication required."


class AuthorizationError(AppError):
    status_code = 403
    default_message = "You are not allowed to act on behalf of another user."


class NotFoundError(AppError):
    status_code = 404
    default_message = "Not found"


class UpstreamTimeoutError(AppError):
    status_code = 408
    default_message = "Request timeout"


class RateLimitExceededError(AppError):
    status_code = 429
    default_message = "Too many requests. Please try again later."

    def __init__(self, message=None, retry_after=None):
        super().__init__(message)
        self.retry_after = retry_after

    def to_dict(self):
        body = super().to_dict()
        if self.retry_after is not None:
            body["retry_after"] = self.retry_after
        return body


class UpstreamRateLimitError(AppError):
    status_code = 429
    default_message = "Rate limit exceeded. Please try again later."


class UpstreamBillingError(AppError):
    status_code = 402
    default_message = "Payment required. Please add credits to your workspace."


class UpstreamGenericError(AppError):
    status_code = 500
    default_message = "AI API error"


class ParseError(AppError):
    status_code = 500
    default_message = "Failed to parse AI response"
