"""
Shared fixtures: a fake GitHub REST API routed through requests.Session.request.
"""

import base64
import json
import time
from typing import Callable, Dict, List, Optional, Tuple, Union
from urllib.parse import urlsplit

import pytest
import requests

from pr_context.github.client import DIFF_MEDIA_TYPE, GitHubClient


def make_response(
    status: int = 200,
    json_data=None,
    text: Optional[str] = None,
    headers: Optional[Dict[str, str]] = None,
    url: str = "https://api.github.com/",
) -> requests.Response:
    """Build a real requests.Response without touching the network."""
    response = requests.Response()
    response.status_code = status
    response.url = url
    response.encoding = 'utf-8'
    if json_data is not None:
        response._content = json.dumps(json_data).encode('utf-8')
        response.headers['Content-Type'] = 'application/json'
    elif text is not None:
        response._content = text.encode('utf-8')
    else:
        response._content = b''
    response.headers.update(headers or {})
    return response


def rate_limit_payload(remaining: int = 4999, limit: int = 5000) -> Dict:
    return {'rate': {'limit': limit, 'remaining': remaining, 'reset': int(time.time()) + 3600, 'used': limit - remaining}}


def pr_payload(number: int = 42, title: str = "Add session handling", body: Optional[str] = "Adds sessions.") -> Dict:
    return {
        'number': number,
        'id': 1000 + number,
        'title': title,
        'body': body,
        'state': 'open',
        'draft': False,
        'merged': False,
        'html_url': f'https://github.com/octo/app/pull/{number}',
        'diff_url': f'https://github.com/octo/app/pull/{number}.diff',
        'patch_url': f'https://github.com/octo/app/pull/{number}.patch',
        'user': {'login': 'octocat', 'avatar_url': 'https://avatars.example/octocat'},
        'base': {'ref': 'main', 'sha': 'basesha', 'repo': {'id': 7, 'name': 'app', 'full_name': 'octo/app', 'private': False}},
        'head': {'ref': 'feature/sessions', 'sha': 'headsha'},
        'created_at': '2024-01-01T00:00:00Z',
        'updated_at': '2024-01-02T00:00:00Z',
        'closed_at': None,
        'merged_at': None,
        'additions': 10,
        'deletions': 2,
        'changed_files': 2,
        'commits': 1,
    }


def file_payload(filename: str, status: str = 'modified', additions: int = 1, deletions: int = 1) -> Dict:
    return {
        'filename': filename,
        'status': status,
        'additions': additions,
        'deletions': deletions,
        'changes': additions + deletions,
        'sha': 'blobsha',
    }


def commit_payload(sha: str, message: str, author: str = 'Octo Cat') -> Dict:
    return {'sha': sha, 'commit': {'message': message, 'author': {'name': author, 'date': '2024-01-01T00:00:00Z'}}}


def content_payload(path: str, text: str) -> Dict:
    return {
        'type': 'file',
        'name': path.rsplit('/', 1)[-1],
        'path': path,
        'sha': 'contentsha',
        'size': len(text.encode('utf-8')),
        'encoding': 'base64',
        'content': base64.b64encode(text.encode('utf-8')).decode('ascii'),
    }


Handler = Union[requests.Response, Callable[[Dict], requests.Response]]


class FakeGitHub:
    """
    Routes session requests by (method, path).

    Queued responses are consumed in order; the last one repeats. Requests
    asking for the diff media type are routed to ('GET', path, 'diff').
    """

    def __init__(self):
        self.routes: Dict[Tuple, List[Handler]] = {}
        self.calls: List[Tuple[str, str, Dict]] = []
        self.add('GET', '/rate_limit', make_response(json_data=rate_limit_payload()))

    def add(self, method: str, path: str, *handlers: Handler, diff: bool = False) -> None:
        key = (method, path, 'diff') if diff else (method, path)
        self.routes[key] = list(handlers)

    def __call__(self, method: str, url: str, **kwargs) -> requests.Response:
        path = urlsplit(url).path
        self.calls.append((method, path, kwargs))

        headers = kwargs.get('headers') or {}
        key = (method, path, 'diff') if headers.get('Accept') == DIFF_MEDIA_TYPE else (method, path)
        if key not in self.routes:
            return make_response(404, json_data={'message': 'Not Found'}, url=url)

        queue = self.routes[key]
        handler = queue.pop(0) if len(queue) > 1 else queue[0]
        return handler(kwargs) if callable(handler) else handler

    def paths(self, method: str = 'GET') -> List[str]:
        return [path for m, path, _ in self.calls if m == method and path != '/rate_limit']


README_DIFF = (
    "diff --git a/README.md b/README.md\n"
    "@@ -1,3 +1,3 @@\n"
    "-old\n"
    "+new\n"
    " context"
)

MULTI_FILE_DIFF = """diff --git a/src/auth/session.ts b/src/auth/session.ts
index 83db48f..bf269f4 100644
--- a/src/auth/session.ts
+++ b/src/auth/session.ts
@@ -10,6 +10,8 @@ export function createSession(user: User) {
   const id = randomId()
-  const ttl = 3600
+  const ttl = config.sessionTtl
+  const token = await sign(id)
+  await store.save(id, token)
   return { id, ttl }
 }

diff --git a/src/utils/format.py b/src/utils/format.py
new file mode 100644
index 0000000..e69de29
--- /dev/null
+++ b/src/utils/format.py
@@ -0,0 +1,3 @@
+def format_date(value):
+    return value.isoformat()
+
diff --git a/docs/old.md b/docs/old.md
deleted file mode 100644
index 1111111..0000000
--- a/docs/old.md
+++ /dev/null
@@ -1,2 +0,0 @@
-# Old
-Removed docs
diff --git a/assets/logo.png b/assets/logo.png
index 2222222..3333333 100644
Binary files a/assets/logo.png and b/assets/logo.png differ
diff --git a/package-lock.json b/package-lock.json
index 4444444..5555555 100644
--- a/package-lock.json
+++ b/package-lock.json
@@ -1 +1 @@
-{"lockfileVersion": 2}
+{"lockfileVersion": 3}
"""


@pytest.fixture
def fake_github() -> FakeGitHub:
    return FakeGitHub()


@pytest.fixture
def sleeps() -> List[float]:
    return []


@pytest.fixture
def client(fake_github, sleeps, monkeypatch) -> GitHubClient:
    github_client = GitHubClient("ghp_test_token_1234567890", sleep=sleeps.append)
    monkeypatch.setattr(github_client.session, 'request', fake_github)
    return github_client


@pytest.fixture
def readme_diff() -> str:
    return README_DIFF


@pytest.fixture
def multi_file_diff() -> str:
    return MULTI_FILE_DIFF
