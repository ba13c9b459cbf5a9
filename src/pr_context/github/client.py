"""
GitHub API Client

Handles GitHub API authentication, rate limiting, and communication.
Provides methods for PR metadata, file list, diff, commit and file content
retrieval plus comment and review submission.
"""

import time
import logging
import threading
from concurrent.futures import ThreadPoolExecutor, wait
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple
from urllib.parse import quote

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from ..errors import GitHubAPIError, MalformedResponse, NotAFile, STATUS_ERRORS
from ..models.github import (
    CommentRef,
    CommitSummary,
    DiffTotals,
    FileContent,
    FileSummary,
    PRDetails,
    PRDiffResult,
    RateLimitInfo,
    ReviewCommentInput,
)
from .retry import RateLimitRetry, RetryPolicy


logger = logging.getLogger(__name__)

DIFF_MEDIA_TYPE = 'application/vnd.github.v3.diff'
JSON_MEDIA_TYPE = 'application/vnd.github.v3+json'
MAX_PER_PAGE = 100
CONTENT_BATCH_SIZE = 10
BATCH_PAUSE_SECONDS = 0.1
REVIEW_EVENTS = {'APPROVE', 'REQUEST_CHANGES', 'COMMENT'}


def parse_repo_full_name(full_name: str) -> Tuple[str, str]:
    """
    Split 'owner/repo' into its parts.

    Raises:
        ValueError: If the name is not in 'owner/repo' form
    """
    parts = full_name.split('/')
    if len(parts) != 2 or not all(parts):
        raise ValueError(f"Invalid repository full name: {full_name}")
    return parts[0], parts[1]


class GitHubClient:
    """
    GitHub API client with authentication, rate limiting, and error handling.

    Provides methods for:
    - PR metadata, file list, raw diff and commit retrieval (paginated)
    - Best-effort batched file content retrieval
    - Comment and review submission

    Rate-limited responses are resubmitted according to the RetryPolicy;
    client errors (400/401/403/404/422) are raised immediately. The client
    keeps no state between calls apart from credentials and the session.
    """

    def __init__(
        self,
        token: str,
        base_url: str = "https://api.github.com",
        timeout: float = 30,
        retry_policy: Optional[RetryPolicy] = None,
        rate_limit_warning_threshold: int = 100,
        check_rate_limit: bool = True,
        session: Optional[requests.Session] = None,
        sleep: Callable[[float], None] = time.sleep,
        batch_size: int = CONTENT_BATCH_SIZE,
        batch_pause: float = BATCH_PAUSE_SECONDS,
    ):
        """
        Initialize GitHub client.

        Args:
            token: Pre-resolved installation or personal access token
            base_url: GitHub API base URL (default: https://api.github.com)
            timeout: Per-request timeout in seconds
            retry_policy: Rate limit and server error retry budget
            rate_limit_warning_threshold: Log a warning below this many remaining calls
            check_rate_limit: Inspect quota before read-heavy operations
            session: Optional preconfigured requests session
            sleep: Sleep function used for rate limit waits and batch pauses
            batch_size: Concurrent requests per file content batch
            batch_pause: Pause between file content batches in seconds
        """
        if not token:
            raise ValueError("GitHub token is required")
        if batch_size <= 0:
            raise ValueError("batch_size must be positive")

        self.token = token
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.retry_policy = retry_policy or RetryPolicy()
        self.rate_limit_warning_threshold = rate_limit_warning_threshold
        self.check_rate_limit = check_rate_limit
        self.batch_size = batch_size
        self.batch_pause = batch_pause
        self._sleep = sleep
        self._rate_limit_retry = RateLimitRetry(self.retry_policy, sleep=sleep)
        self.session = session or self._create_session()

    @classmethod
    def from_config(cls, config, session: Optional[requests.Session] = None) -> "GitHubClient":
        """
        Build a client from application configuration.

        Args:
            config: AppConfig instance
            session: Optional preconfigured requests session
        """
        github = config.github
        return cls(
            token=github.token,
            base_url=github.api_base_url,
            timeout=github.timeout_seconds,
            retry_policy=RetryPolicy(
                primary_retries=github.primary_retries,
                secondary_retries=github.secondary_retries,
                max_wait_seconds=github.max_wait_seconds,
                server_error_retries=github.server_error_retries,
                backoff_factor=github.backoff_factor,
            ),
            rate_limit_warning_threshold=github.rate_limit_warning_threshold,
            session=session,
            batch_size=config.context.content_batch_size,
            batch_pause=config.context.batch_pause_seconds,
        )

    @property
    def headers(self) -> Dict[str, str]:
        return dict(self.session.headers)

    def _create_session(self) -> requests.Session:
        """Create requests session with retry strategy and authentication."""
        session = requests.Session()

        # Transport-level backoff for server errors only; 429/403 go to RateLimitRetry
        retry_strategy = Retry(
            total=self.retry_policy.server_error_retries,
            backoff_factor=self.retry_policy.backoff_factor,
            status_forcelist=[500, 502, 503, 504],
            respect_retry_after_header=False,
            raise_on_status=False,
        )
        adapter = HTTPAdapter(max_retries=retry_strategy)
        session.mount("http://", adapter)
        session.mount("https://", adapter)

        session.headers.update({
            'Authorization': f'token {self.token}',
            'Accept': JSON_MEDIA_TYPE,
            'User-Agent': 'PR-Context-Pipeline/1.0',
        })

        return session

    def _request(self, method: str, endpoint: str, **kwargs) -> requests.Response:
        """
        Make authenticated request to GitHub API with rate limit handling.

        Args:
            method: HTTP method (GET, POST, etc.)
            endpoint: API endpoint (without base URL)
            **kwargs: Additional arguments for requests

        Returns:
            Response object

        Raises:
            GitHubAPIError: For API errors (subclass per status code)
            RateLimitExceeded: When the rate limit retry budget is exhausted
        """
        url = f"{self.base_url}/{endpoint.lstrip('/')}"
        kwargs.setdefault('timeout', self.timeout)

        def send() -> requests.Response:
            try:
                return self.session.request(method, url, **kwargs)
            except requests.RequestException as e:
                logger.error(f"Request failed: {e}")
                raise GitHubAPIError(f"Request failed: {str(e)}")

        response = self._rate_limit_retry(send, description=f"{method} {endpoint}")

        if not response.ok:
            error_data = self._error_data(response)
            error_cls = STATUS_ERRORS.get(response.status_code, GitHubAPIError)
            raise error_cls(
                f"GitHub API error: {response.status_code} - {error_data.get('message', 'Unknown error')}",
                status_code=response.status_code,
                response_data=error_data,
            )

        return response

    def _get_json(self, endpoint: str, **kwargs) -> Any:
        response = self._request('GET', endpoint, **kwargs)
        return self._decode_json(response)

    def _post_json(self, endpoint: str, payload: Dict) -> Any:
        response = self._request('POST', endpoint, json=payload)
        return self._decode_json(response)

    @staticmethod
    def _decode_json(response: requests.Response) -> Any:
        try:
            return response.json()
        except ValueError as e:
            raise MalformedResponse(
                f"Invalid JSON from {response.url}: {e}",
                status_code=response.status_code,
            )

    @staticmethod
    def _error_data(response: requests.Response) -> Dict:
        if not response.content:
            return {}
        try:
            data = response.json()
        except ValueError:
            return {'message': response.text}
        return data if isinstance(data, dict) else {'message': str(data)}

    def _paginate(self, endpoint: str) -> List[Dict]:
        """Collect all pages until an empty or short page is returned."""
        items: List[Dict] = []
        page = 1

        while True:
            page_items = self._get_json(endpoint, params={'page': page, 'per_page': MAX_PER_PAGE})
            if not isinstance(page_items, list):
                raise MalformedResponse(f"Expected a list from {endpoint}, got {type(page_items).__name__}")
            if not page_items:
                break

            items.extend(page_items)

            if len(page_items) < MAX_PER_PAGE:
                break

            page += 1

        return items

    def _warn_if_rate_limit_low(self) -> None:
        """Check remaining quota and log a warning when low. Never blocks."""
        if not self.check_rate_limit:
            return
        try:
            rate_limit = self.get_rate_limit()
        except GitHubAPIError as e:
            logger.error(f"Failed to check rate limit: {e}")
            return

        if rate_limit.remaining < self.rate_limit_warning_threshold:
            logger.warning(
                f"GitHub API rate limit low: {rate_limit.remaining}/{rate_limit.limit} remaining. "
                f"Resets at {rate_limit.reset_time.isoformat()}"
            )

    def get_rate_limit(self) -> RateLimitInfo:
        """
        Get current rate limit status.

        Returns:
            Fresh RateLimitInfo snapshot
        """
        return RateLimitInfo.from_api(self._get_json('/rate_limit'))

    def get_pull_request(self, owner: str, repo: str, pr_number: int) -> PRDetails:
        """
        Get pull request information.

        Args:
            owner: Repository owner
            repo: Repository name
            pr_number: Pull request number

        Returns:
            Pull request metadata

        Raises:
            NotFound: If the pull request does not exist
            Unauthorized, Forbidden: On permission errors
        """
        self._warn_if_rate_limit_low()
        logger.info(f"Fetching PR {owner}/{repo}#{pr_number}")

        data = self._get_json(f'/repos/{owner}/{repo}/pulls/{pr_number}')
        return PRDetails.from_api(data)

    def get_pr_files(self, owner: str, repo: str, pr_number: int) -> List[FileSummary]:
        """
        Get files changed in a pull request, across all pages.

        Args:
            owner: Repository owner
            repo: Repository name
            pr_number: Pull request number

        Returns:
            List of changed file summaries
        """
        self._warn_if_rate_limit_low()
        logger.info(f"Fetching PR files for {owner}/{repo}#{pr_number}")

        files = [
            FileSummary.from_api(item)
            for item in self._paginate(f'/repos/{owner}/{repo}/pulls/{pr_number}/files')
        ]

        logger.info(f"Found {len(files)} changed files")
        return files

    def get_pr_diff(self, owner: str, repo: str, pr_number: int) -> PRDiffResult:
        """
        Get the raw unified diff and file list of a pull request.

        Totals are summed from the file list.

        Args:
            owner: Repository owner
            repo: Repository name
            pr_number: Pull request number

        Returns:
            PRDiffResult with diff text, files and totals
        """
        self._warn_if_rate_limit_low()

        files = self.get_pr_files(owner, repo, pr_number)

        logger.info(f"Fetching raw diff for {owner}/{repo}#{pr_number}")
        response = self._request(
            'GET',
            f'/repos/{owner}/{repo}/pulls/{pr_number}',
            headers={'Accept': DIFF_MEDIA_TYPE},
        )

        return PRDiffResult(
            diff_text=response.text or '',
            files=tuple(files),
            stats=DiffTotals.from_files(files),
        )

    def get_pr_commits(self, owner: str, repo: str, pr_number: int) -> List[CommitSummary]:
        """
        Get commits of a pull request, across all pages.

        Args:
            owner: Repository owner
            repo: Repository name
            pr_number: Pull request number

        Returns:
            List of commit summaries in PR order
        """
        self._warn_if_rate_limit_low()
        logger.info(f"Fetching commits for {owner}/{repo}#{pr_number}")

        return [
            CommitSummary.from_api(item)
            for item in self._paginate(f'/repos/{owner}/{repo}/pulls/{pr_number}/commits')
        ]

    def get_file_content(self, owner: str, repo: str, path: str, ref: str) -> FileContent:
        """
        Get one file's content at a ref.

        Args:
            owner: Repository owner
            repo: Repository name
            path: File path in the repository
            ref: Commit SHA, branch or tag

        Returns:
            Decoded file content

        Raises:
            NotAFile: If the path is a directory or resolves to several entries
        """
        self._warn_if_rate_limit_low()
        logger.debug(f"Fetching {owner}/{repo}/{path}@{ref}")

        data = self._get_json(f"/repos/{owner}/{repo}/contents/{quote(path)}", params={'ref': ref})
        if isinstance(data, list) or not isinstance(data, dict) or data.get('type') != 'file':
            raise NotAFile(path)

        return FileContent.from_api(data)

    def get_file_contents(
        self,
        owner: str,
        repo: str,
        refs: Sequence[Tuple[str, str]],
        cancel_event: Optional[threading.Event] = None,
    ) -> List[FileContent]:
        """
        Get many file contents, best effort.

        Requests are dispatched in batches; every request of a batch settles
        before the next batch starts. Failed files are logged and left out of
        the result.

        Args:
            owner: Repository owner
            repo: Repository name
            refs: (path, ref) pairs
            cancel_event: When set, no further batch is started

        Returns:
            Contents of the files that could be fetched, in input order
        """
        results: List[FileContent] = []

        for start in range(0, len(refs), self.batch_size):
            if cancel_event is not None and cancel_event.is_set():
                logger.warning(f"File content fetch cancelled after {start}/{len(refs)} files")
                break

            batch = refs[start:start + self.batch_size]
            with ThreadPoolExecutor(max_workers=len(batch)) as executor:
                futures = [
                    executor.submit(self.get_file_content, owner, repo, path, ref)
                    for path, ref in batch
                ]
                wait(futures)

            for (path, ref), future in zip(batch, futures):
                error = future.exception()
                if error is None:
                    results.append(future.result())
                else:
                    logger.warning(f"Failed to fetch file content for {path}@{ref}: {error}")

            if start + self.batch_size < len(refs):
                self._sleep(self.batch_pause)

        logger.info(f"Fetched {len(results)}/{len(refs)} file contents")
        return results

    def post_comment(self, owner: str, repo: str, pr_number: int, body: str) -> CommentRef:
        """
        Post a general comment on a pull request.

        Returns:
            Reference to the created comment
        """
        self._warn_if_rate_limit_low()
        logger.info(f"Posting comment on {owner}/{repo}#{pr_number}")

        data = self._post_json(f'/repos/{owner}/{repo}/issues/{pr_number}/comments', {'body': body})
        return CommentRef.from_api(data)

    def post_review_comment(
        self,
        owner: str,
        repo: str,
        pr_number: int,
        commit_id: str,
        path: str,
        body: str,
        line: int,
        side: str = "RIGHT",
    ) -> CommentRef:
        """
        Post an inline comment on a single line of a pull request.

        Returns:
            Reference to the created review comment
        """
        comment = ReviewCommentInput(path=path, line=line, body=body, side=side)

        self._warn_if_rate_limit_low()
        logger.info(f"Posting review comment on {owner}/{repo}#{pr_number} {path}:{line}")

        payload = {'commit_id': commit_id, **comment.to_api()}
        data = self._post_json(f'/repos/{owner}/{repo}/pulls/{pr_number}/comments', payload)
        return CommentRef.from_api(data)

    def submit_review(
        self,
        owner: str,
        repo: str,
        pr_number: int,
        commit_id: str,
        body: str,
        event: str,
        comments: Optional[List[ReviewCommentInput]] = None,
    ) -> CommentRef:
        """
        Submit a review with zero or more inline comments.

        Args:
            event: APPROVE, REQUEST_CHANGES or COMMENT

        Returns:
            Reference to the created review
        """
        if event not in REVIEW_EVENTS:
            raise ValueError(f"Invalid review event: {event}")

        self._warn_if_rate_limit_low()
        logger.info(f"Submitting {event} review on {owner}/{repo}#{pr_number} with {len(comments or [])} comments")

        payload: Dict[str, Any] = {'commit_id': commit_id, 'body': body, 'event': event}
        if comments:
            payload['comments'] = [c.to_api() for c in comments]

        data = self._post_json(f'/repos/{owner}/{repo}/pulls/{pr_number}/reviews', payload)
        return CommentRef.from_api(data)
