# Copyright 2026 Google LLC
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
#
# SPDX-License-Identifier: Apache-2.0


"""Shared fixtures: an in-memory commit graph standing in for git."""

from __future__ import annotations

import fnmatch
import hashlib
import re
from collections import deque

import pytest
from changekit.backends.vcs import CommitRecord
from changekit.errors import E, ChangeKitError

_PARENT_REF = re.compile(r'^(?P<base>.+)\^(?P<n>\d+)$')


class FakeVCS:
    """A tiny commit DAG implementing the :class:`VCS` protocol.

    Commits are recorded oldest first; ``log`` reports them newest first,
    like ``git log`` on a linear-ish history.
    """

    def __init__(self) -> None:
        """Create an empty repository."""
        self.records: dict[str, CommitRecord] = {}
        self.order: list[str] = []
        self.files: dict[str, tuple[str, ...]] = {}
        self.tag_map: dict[str, str] = {}
        self.head: str | None = None
        self.fail_show: set[str] = set()
        self.fail_log: set[str] = set()
        self.log_calls: list[str] = []

    def commit(
        self,
        message: str,
        *,
        parents: list[str] | None = None,
        files: tuple[str, ...] = (),
        author: str = 'alice',
    ) -> str:
        """Record a commit; without explicit parents it extends HEAD."""
        n = len(self.order) + 1
        sha = hashlib.sha1(f'{n}:{message}'.encode()).hexdigest()
        move_head = parents is None
        if parents is None:
            parents = [self.head] if self.head else []
        subject, _, body = message.partition('\n')
        self.records[sha] = CommitRecord(
            hash=sha,
            author=author,
            date=f'2026-01-{n:02d}T10:00:00+00:00',
            subject=subject,
            body=body.strip(),
            parents=tuple(parents),
        )
        self.order.append(sha)
        self.files[sha] = files
        if move_head:
            self.head = sha
        return sha

    def merge(self, message: str, branch_tip: str, *, author: str = 'alice') -> str:
        """Record a merge of *branch_tip* into HEAD and advance HEAD."""
        assert self.head is not None
        sha = self.commit(message, parents=[self.head, branch_tip], author=author)
        self.head = sha
        return sha

    def tag(self, name: str, sha: str | None = None) -> None:
        """Point tag *name* at *sha* (HEAD by default)."""
        target = sha or self.head
        assert target is not None
        self.tag_map[name] = target

    def _resolve(self, ref: str) -> str:
        if ref == 'HEAD' and self.head:
            return self.head
        if ref in self.tag_map:
            return self.tag_map[ref]
        if ref in self.records:
            return ref
        m = _PARENT_REF.match(ref)
        if m:
            parents = self.records[self._resolve(m.group('base'))].parents
            idx = int(m.group('n')) - 1
            if idx < len(parents):
                return parents[idx]
        raise ChangeKitError(code=E.VCS_COMMAND_FAILED, message=f'unknown revision {ref!r}')

    def _ancestors(self, sha: str) -> set[str]:
        seen = {sha}
        queue = deque([sha])
        while queue:
            for parent in self.records[queue.popleft()].parents:
                if parent not in seen:
                    seen.add(parent)
                    queue.append(parent)
        return seen

    async def log(
        self,
        rev_range: str,
        *,
        paths: list[str] | None = None,
        merges: bool = False,
    ) -> list[str]:
        """Return hashes in *rev_range*, newest first."""
        self.log_calls.append(rev_range)
        if rev_range in self.fail_log:
            raise ChangeKitError(code=E.VCS_COMMAND_FAILED, message=f'log {rev_range} failed')
        if '..' in rev_range:
            start, end = rev_range.split('..', 1)
            included = self._ancestors(self._resolve(end)) - self._ancestors(self._resolve(start))
        else:
            included = self._ancestors(self._resolve(rev_range))
        result = []
        for sha in reversed(self.order):
            if sha not in included:
                continue
            if merges and len(self.records[sha].parents) < 2:
                continue
            if paths and not any(f.startswith(f'{p.rstrip("/")}/') for f in self.files[sha] for p in paths):
                continue
            result.append(sha)
        return result

    async def show(self, sha: str) -> CommitRecord:
        """Return the record of *sha*."""
        if sha in self.fail_show or sha not in self.records:
            raise ChangeKitError(code=E.VCS_COMMAND_FAILED, message=f'bad object {sha}')
        return self.records[sha]

    async def tags(self, pattern: str = '*') -> list[str]:
        """Return matching tags, highest version first."""

        def _natural(tag: str) -> list[tuple[int, int | str]]:
            return [(0, int(p)) if p.isdigit() else (1, p) for p in re.split(r'(\d+)', tag)]

        return sorted((t for t in self.tag_map if fnmatch.fnmatchcase(t, pattern)), key=_natural, reverse=True)

    async def latest_tag(self, pattern: str = '*') -> str | None:
        """Return the highest matching tag."""
        tags = await self.tags(pattern)
        return tags[0] if tags else None


@pytest.fixture
def vcs() -> FakeVCS:
    """Return an empty fake repository."""
    return FakeVCS()
