"""
GitHub Data Models

GitHub REST API 응답을 정규화한 데이터 모델들
"""

import base64
import binascii
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from ..errors import MalformedResponse


def _require(payload: Any, key: str, expected_type: Any) -> Any:
    """응답에서 필수 필드를 꺼내고 타입을 확인"""
    if not isinstance(payload, dict):
        raise MalformedResponse(f"Expected object, got {type(payload).__name__}")
    if key not in payload:
        raise MalformedResponse(f"Missing field '{key}' in GitHub response", response_data=payload)
    value = payload[key]
    if not isinstance(value, expected_type) or (isinstance(value, bool) and expected_type is int):
        raise MalformedResponse(
            f"Field '{key}' has unexpected type {type(value).__name__}",
            response_data=payload,
        )
    return value


@dataclass(frozen=True)
class RateLimitInfo:
    """rate limit 스냅샷 (캐시하지 않음)"""
    limit: int
    remaining: int
    reset_time: datetime
    used: int

    @classmethod
    def from_api(cls, payload: Dict) -> "RateLimitInfo":
        rate = _require(payload, 'rate', dict)
        limit = _require(rate, 'limit', int)
        remaining = _require(rate, 'remaining', int)
        return cls(
            limit=limit,
            remaining=remaining,
            reset_time=datetime.fromtimestamp(_require(rate, 'reset', int)),
            used=rate.get('used', limit - remaining),
        )


@dataclass(frozen=True)
class PRDetails:
    """Pull Request 메타데이터"""
    number: int
    id: int
    title: str
    body: Optional[str]
    state: str
    draft: bool
    merged: bool
    html_url: str
    diff_url: str
    patch_url: str
    author: str
    author_avatar_url: str
    base_ref: str
    base_sha: str
    head_ref: str
    head_sha: str
    repo_full_name: str
    repo_private: bool
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    closed_at: Optional[str] = None
    merged_at: Optional[str] = None
    additions: int = 0
    deletions: int = 0
    changed_files: int = 0
    commits: int = 0

    @classmethod
    def from_api(cls, payload: Dict) -> "PRDetails":
        base = _require(payload, 'base', dict)
        head = _require(payload, 'head', dict)
        repo = base.get('repo') or {}
        user = payload.get('user') or {}

        return cls(
            number=_require(payload, 'number', int),
            id=payload.get('id', 0),
            title=_require(payload, 'title', str),
            body=payload.get('body'),
            state=_require(payload, 'state', str),
            draft=bool(payload.get('draft')),
            merged=bool(payload.get('merged')),
            html_url=payload.get('html_url', ''),
            diff_url=payload.get('diff_url', ''),
            patch_url=payload.get('patch_url', ''),
            author=user.get('login') or 'unknown',
            author_avatar_url=user.get('avatar_url') or '',
            base_ref=_require(base, 'ref', str),
            base_sha=_require(base, 'sha', str),
            head_ref=_require(head, 'ref', str),
            head_sha=_require(head, 'sha', str),
            repo_full_name=repo.get('full_name', ''),
            repo_private=bool(repo.get('private')),
            created_at=payload.get('created_at'),
            updated_at=payload.get('updated_at'),
            closed_at=payload.get('closed_at'),
            merged_at=payload.get('merged_at'),
            additions=payload.get('additions') or 0,
            deletions=payload.get('deletions') or 0,
            changed_files=payload.get('changed_files') or 0,
            commits=payload.get('commits') or 0,
        )


@dataclass(frozen=True)
class FileSummary:
    """PR 파일 목록의 항목"""
    filename: str
    status: str
    additions: int
    deletions: int
    changes: int
    patch: Optional[str] = None
    previous_filename: Optional[str] = None
    blob_url: str = ''
    raw_url: str = ''
    contents_url: str = ''
    sha: Optional[str] = None

    @classmethod
    def from_api(cls, payload: Dict) -> "FileSummary":
        return cls(
            filename=_require(payload, 'filename', str),
            status=_require(payload, 'status', str),
            additions=_require(payload, 'additions', int),
            deletions=_require(payload, 'deletions', int),
            changes=_require(payload, 'changes', int),
            patch=payload.get('patch'),
            previous_filename=payload.get('previous_filename'),
            blob_url=payload.get('blob_url') or '',
            raw_url=payload.get('raw_url') or '',
            contents_url=payload.get('contents_url') or '',
            sha=payload.get('sha'),
        )


@dataclass(frozen=True)
class CommitSummary:
    """PR 커밋 요약"""
    sha: str
    message: str
    author: str
    date: str

    @property
    def subject(self) -> str:
        """커밋 메시지 첫 줄"""
        return self.message.split('\n', 1)[0]

    @classmethod
    def from_api(cls, payload: Dict) -> "CommitSummary":
        commit = _require(payload, 'commit', dict)
        author = commit.get('author') or {}
        return cls(
            sha=_require(payload, 'sha', str),
            message=_require(commit, 'message', str),
            author=author.get('name') or 'unknown',
            date=author.get('date') or '',
        )


@dataclass(frozen=True)
class FileContent:
    """특정 ref의 파일 내용 (UTF-8 디코딩 완료)"""
    path: str
    filename: str
    content: str
    encoding: str
    sha: str
    size: int

    @classmethod
    def from_api(cls, payload: Dict) -> "FileContent":
        encoding = payload.get('encoding', 'base64')
        raw = _require(payload, 'content', str)
        if encoding != 'base64':
            raise MalformedResponse(
                f"Unsupported content encoding '{encoding}' for {payload.get('path')}",
                response_data=payload,
            )
        try:
            content = base64.b64decode(raw).decode('utf-8', errors='replace')
        except (binascii.Error, ValueError) as e:
            raise MalformedResponse(f"Cannot decode content of {payload.get('path')}: {e}")

        return cls(
            path=_require(payload, 'path', str),
            filename=_require(payload, 'name', str),
            content=content,
            encoding=encoding,
            sha=_require(payload, 'sha', str),
            size=payload.get('size', len(content)),
        )


@dataclass(frozen=True)
class DiffTotals:
    """파일 목록에서 합산한 diff 통계"""
    total_files: int
    total_additions: int
    total_deletions: int
    total_changes: int

    @classmethod
    def from_files(cls, files: List[FileSummary]) -> "DiffTotals":
        return cls(
            total_files=len(files),
            total_additions=sum(f.additions for f in files),
            total_deletions=sum(f.deletions for f in files),
            total_changes=sum(f.changes for f in files),
        )


@dataclass(frozen=True)
class PRDiffResult:
    """raw diff 텍스트와 파일 목록"""
    diff_text: str
    files: Tuple[FileSummary, ...]
    stats: DiffTotals


@dataclass(frozen=True)
class CommentRef:
    """작성된 코멘트/리뷰 참조"""
    id: int
    html_url: str

    @classmethod
    def from_api(cls, payload: Dict) -> "CommentRef":
        return cls(id=_require(payload, 'id', int), html_url=payload.get('html_url', ''))


@dataclass
class ReviewCommentInput:
    """리뷰에 포함할 인라인 코멘트"""
    path: str
    line: int
    body: str
    side: str = "RIGHT"

    def __post_init__(self):
        """데이터 검증"""
        if self.side not in {'RIGHT', 'LEFT'}:
            raise ValueError(f"Invalid side: {self.side}")
        if self.line <= 0:
            raise ValueError("Line number must be positive")
        if not self.body.strip():
            raise ValueError("Comment body cannot be empty")

    def to_api(self) -> Dict[str, Any]:
        return {'path': self.path, 'line': self.line, 'body': self.body, 'side': self.side}
