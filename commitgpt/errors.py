"""
Exception types raised by commit-gpt.
"""


class CommitGPTError(Exception):
    """Base class for all commit-gpt errors."""


class ConfigError(CommitGPTError):
    """Raised when the API key or other configuration cannot be resolved."""


class RepositoryError(CommitGPTError):
    """Raised when the Git repository cannot be opened or diffed."""


class APIError(CommitGPTError):
    """
    Raised when the chat-completion request fails.

    Attributes:
        status_code (int | None): HTTP status of the response, if one was received
        body (str | None): Raw response body, if one was received
    """

    def __init__(self, message, status_code=None, body=None):
        super().__init__(message)
        self.status_code = status_code
        self.body = body
