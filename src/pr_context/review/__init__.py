"""
Review Context Builder

This module provides diff analytics and assembles the PR context
handed to the external reviewer.
"""

from .analyzer import (
    aggregate_stats,
    compute_context_ranges,
    detect_language,
    extract_affected_symbols,
    extract_changed_lines,
    filter_reviewable,
    score_complexity,
    should_review,
    summarize_diff,
)
from .context import (
    build_pr_context,
    generate_summary,
    get_focused_context,
    get_line_contexts,
    prepare_for_review,
)

__all__ = [
    'aggregate_stats',
    'compute_context_ranges',
    'detect_language',
    'extract_affected_symbols',
    'extract_changed_lines',
    'filter_reviewable',
    'score_complexity',
    'should_review',
    'summarize_diff',
    'build_pr_context',
    'generate_summary',
    'get_focused_context',
    'get_line_contexts',
    'prepare_for_review',
]
