"""
GitHub Integration Layer

This module provides GitHub API access with rate limit handling and
unified diff parsing.
"""

from .client import GitHubClient, parse_repo_full_name
from .parser import parse_diff, reconstruct_patch, render_file_diff
from .retry import RateLimitRetry, RetryPolicy

__all__ = [
    'GitHubClient',
    'parse_repo_full_name',
    'parse_diff',
    'reconstruct_patch',
    'render_file_diff',
    'RateLimitRetry',
    'RetryPolicy',
]
