"""
PR Context Pipeline

GitHub Pull Request 리뷰 컨텍스트 생성 라이브러리
"""

__version__ = "1.0.0"

from .github import GitHubClient, parse_diff
from .review import build_pr_context, generate_summary, prepare_for_review
from .models import ContextBuildOptions, PRContext

__all__ = [
    "GitHubClient",
    "parse_diff",
    "build_pr_context",
    "generate_summary",
    "prepare_for_review",
    "ContextBuildOptions",
    "PRContext",
]
