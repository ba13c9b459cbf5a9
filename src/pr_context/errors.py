"""
GitHub API Errors

Exception taxonomy raised by the GitHub client.
"""

from datetime import datetime
from typing import Dict, Optional


class GitHubAPIError(Exception):
    """GitHub API related errors"""
    def __init__(self, message: str, status_code: Optional[int] = None, response_data: Optional[Dict] = None):
        super().__init__(message)
        self.status_code = status_code
        self.response_data = response_data


class NotFound(GitHubAPIError):
    """Pull request, file or commit does not exist (404)."""


class Unauthorized(GitHubAPIError):
    """Credentials rejected (401)."""


class Forbidden(GitHubAPIError):
    """Credentials lack permission for the resource (403)."""


class ValidationFailed(GitHubAPIError):
    """Request payload rejected by GitHub (422)."""


class MalformedResponse(GitHubAPIError):
    """Response body does not have the expected shape."""


class NotAFile(GitHubAPIError):
    """Content path resolved to a directory or multiple entries."""
    def __init__(self, path: str):
        super().__init__(f"{path} is not a file")
        self.path = path


class RateLimitExceeded(GitHubAPIError):
    """GitHub API rate limit exceeded"""
    def __init__(self, reset_time: datetime, status_code: Optional[int] = None):
        super().__init__(f"Rate limit exceeded. Resets at {reset_time}", status_code=status_code)
        self.reset_time = reset_time


STATUS_ERRORS = {
    401: Unauthorized,
    403: Forbidden,
    404: NotFound,
    422: ValidationFailed,
}
