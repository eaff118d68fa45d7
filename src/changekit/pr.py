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


"""Pull request resolution for merge commits.

Given the hashes of a revision range, :class:`CommitResolver` fetches
each commit, parses its message, and for every merge commit recovers
the pull request behind it:

1. The PR number, from the merge subject (``Merge pull request #N``
   first, any ``#N`` token last). No number means no PR info.
2. The PR's commits: everything reachable from the merge's second
   parent but not its first (``M^1..M^2``).
3. The PR's category (:func:`~changekit.categorize.categorize_pr`).

PRs can contain merges of other PRs. Those are expanded through an
explicit breadth-first worklist, one level at a time, down to
``max_depth`` levels; the resulting records are then assembled
bottom-up with an explicit stack.

Failure policy::

    ┌──────────────────────────────┬───────────────────────────────────────┐
    │ What failed                  │ Outcome                               │
    ├──────────────────────────────┼───────────────────────────────────────┤
    │ Fetching one commit          │ Placeholder commit: type ``other``,   │
    │                              │ "Failed to parse commit"              │
    ├──────────────────────────────┼───────────────────────────────────────┤
    │ Listing one PR's commits     │ Merge kept, no PR info (warning)      │
    ├──────────────────────────────┼───────────────────────────────────────┤
    │ Merge without ``#N``         │ Merge kept, no PR info                │
    └──────────────────────────────┴───────────────────────────────────────┘
"""

from __future__ import annotations

import asyncio
import re
from collections.abc import Sequence
from dataclasses import replace

from changekit.backends.vcs import VCS, CommitRecord, pr_range
from changekit.categorize import categorize_pr
from changekit.commit_parsing import (
    CommitMessage,
    CommitMessageParser,
    CommitType,
    PullRequestInfo,
    SemanticCommit,
)
from changekit.logging import get_logger

logger = get_logger(__name__)

# Tried in order; the first match wins.
PR_NUMBER_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r'Merge pull request #(\d+)'),
    re.compile(r'Merge PR #(\d+)'),
    re.compile(r'Merge.*#(\d+)'),
    re.compile(r'#(\d+)'),
)

FAILED_COMMIT_DESCRIPTION = 'Failed to parse commit'

SQUASH_PREFIX = 'Squashed changes from PR'


def extract_pr_number(subject: str) -> str | None:
    """Return the PR number referenced by a merge subject, if any.

    >>> extract_pr_number('Merge pull request #42 from acme/login')
    '42'
    >>> extract_pr_number("Merge branch 'main' into dev") is None
    True
    """
    for pattern in PR_NUMBER_PATTERNS:
        m = pattern.search(subject)
        if m:
            return m.group(1)
    return None


def extract_branch_name(message: CommitMessage, default: str = 'main') -> str:
    """Return the source branch named in a merge message.

    Understands ``from user/branch`` and ``from user:branch``; the part
    before the first separator (the user or fork) is dropped.
    """
    if not message.is_merge:
        return default
    for line in (message.description, *message.body_lines):
        idx = line.find('from ')
        if idx == -1:
            continue
        tokens = line[idx + 5 :].split()
        if not tokens:
            continue
        ref = tokens[0]
        for sep in (':', '/'):
            if sep in ref:
                branch = ref.split(sep, 1)[1]
                return branch or default
        return ref
    return default


def extract_pr_title(message: CommitMessage) -> str:
    """Return the PR title GitHub puts on the first body line of a merge."""
    if message.is_merge and message.body_lines:
        return message.body_lines[0]
    return ''


def failed_commit(sha: str) -> SemanticCommit:
    """Return the stand-in for a commit that could not be fetched."""
    return SemanticCommit(
        hash=sha,
        author='',
        date='',
        type=CommitType.OTHER,
        description=FAILED_COMMIT_DESCRIPTION,
    )


class CommitResolver:
    """Fetch, parse, and PR-resolve commits against a :class:`VCS`.

    One resolver serves one session; fetched records are cached so a
    commit that appears both in the range and inside a PR is read once.
    """

    def __init__(
        self,
        vcs: VCS,
        *,
        max_depth: int = 3,
        max_pr_commits: int = 250,
        concurrency: int = 8,
        default_branch: str = 'main',
        parser: CommitMessageParser | None = None,
    ) -> None:
        """Initialize the resolver.

        Args:
            vcs: History backend.
            max_depth: Merge nesting levels to expand. Top-level merges
                are level 0; a merge is expanded only below this bound.
            max_pr_commits: Cap on hashes read from one PR range.
            concurrency: Maximum concurrent VCS queries.
            default_branch: Branch reported when a merge names none.
            parser: Message parser; the default parser when ``None``.
        """
        self._vcs = vcs
        self._max_depth = max_depth
        self._max_pr_commits = max_pr_commits
        self._default_branch = default_branch
        self._parser = parser or CommitMessageParser()
        self._semaphore = asyncio.Semaphore(concurrency)
        self._records: dict[str, CommitRecord | None] = {}
        self._messages: dict[str, CommitMessage] = {}
        # Merge hash → PR commit hashes; None when listing failed.
        self._pr_members: dict[str, list[str] | None] = {}

    async def _fetch(self, sha: str) -> None:
        try:
            async with self._semaphore:
                record = await self._vcs.show(sha)
        except Exception as exc:  # noqa: BLE001
            logger.warning('commit_fetch_failed', sha=sha[:8], error=str(exc))
            self._records[sha] = None
            return
        self._records[sha] = record
        self._messages[sha] = self._parser.parse(record.message)

    async def _list_pr_commits(self, sha: str) -> list[str] | None:
        try:
            async with self._semaphore:
                hashes = await self._vcs.log(pr_range(sha))
        except Exception as exc:  # noqa: BLE001
            logger.warning('pr_resolution_failed', sha=sha[:8], error=str(exc))
            return None
        hashes = [h for h in hashes if h != sha]
        if len(hashes) > self._max_pr_commits:
            logger.warning(
                'pr_commits_truncated',
                sha=sha[:8],
                total=len(hashes),
                kept=self._max_pr_commits,
            )
            hashes = hashes[: self._max_pr_commits]
        return hashes

    def _expandable(self, sha: str, depth: int) -> bool:
        record = self._records.get(sha)
        message = self._messages.get(sha)
        if record is None or message is None or not message.is_merge or sha in self._pr_members:
            return False
        if depth >= self._max_depth:
            logger.debug('pr_depth_limit', sha=sha[:8], depth=depth)
            return False
        if extract_pr_number(record.subject) is None:
            logger.debug('merge_without_pr_reference', sha=sha[:8], subject=record.subject)
            return False
        if len(record.parents) < 2:
            logger.debug('merge_without_second_parent', sha=sha[:8])
            return False
        return True

    async def _walk(self, shas: Sequence[str]) -> None:
        """Fetch *shas* and, level by level, the commits of their PRs."""
        seen: set[str] = set()
        level = list(dict.fromkeys(shas))
        depth = 0
        while level:
            seen.update(level)
            await asyncio.gather(*(self._fetch(s) for s in level if s not in self._records))
            merges = [s for s in level if self._expandable(s, depth)]
            members = await asyncio.gather(*(self._list_pr_commits(s) for s in merges))
            next_level: list[str] = []
            for sha, hashes in zip(merges, members):
                self._pr_members[sha] = hashes
                for h in hashes or ():
                    if h not in seen:
                        seen.add(h)
                        next_level.append(h)
            level = next_level
            depth += 1

    def _build(self, sha: str, children: list[SemanticCommit]) -> SemanticCommit:
        record = self._records.get(sha)
        if record is None:
            return failed_commit(sha)
        message = self._messages[sha]
        pr: PullRequestInfo | None = None
        if message.is_merge and self._pr_members.get(sha) is not None:
            if len(children) == 1:
                only = children[0]
                children = [replace(only, description=f'{SQUASH_PREFIX} ({only.description})')]
            pr = PullRequestInfo(
                pr_number=extract_pr_number(record.subject),
                category=categorize_pr(children, message),
                commits=tuple(children),
                branch_name=extract_branch_name(message, self._default_branch),
                title=extract_pr_title(message),
            )
        return SemanticCommit.from_message(message, hash=record.hash, author=record.author, date=record.date, pr=pr)

    def _assemble(self, roots: Sequence[str]) -> list[SemanticCommit]:
        """Build commits bottom-up so every PR sees its resolved children."""
        built: dict[str, SemanticCommit] = {}
        for root in roots:
            stack: list[tuple[str, bool]] = [(root, False)]
            while stack:
                sha, ready = stack.pop()
                if sha in built:
                    continue
                children = self._pr_members.get(sha) or []
                if not ready:
                    stack.append((sha, True))
                    stack.extend((c, False) for c in reversed(children) if c not in built)
                    continue
                built[sha] = self._build(sha, [built[c] for c in children if c in built])
        return [built[s] for s in roots]

    async def resolve_many(self, shas: Sequence[str]) -> list[SemanticCommit]:
        """Resolve every hash in *shas*, preserving order.

        Returns:
            One :class:`SemanticCommit` per input hash (duplicates
            collapsed to their first occurrence).
        """
        roots = list(dict.fromkeys(shas))
        await self._walk(roots)
        commits = self._assemble(roots)
        logger.debug(
            'commits_resolved',
            count=len(commits),
            merges=sum(1 for c in commits if c.is_merge),
            pull_requests=sum(1 for c in commits if c.pr is not None),
        )
        return commits

    async def resolve(self, sha: str) -> SemanticCommit:
        """Resolve a single commit."""
        return (await self.resolve_many([sha]))[0]

    async def resolve_pull_request(self, sha: str) -> PullRequestInfo | None:
        """Return the PR info of merge commit *sha*, or ``None``."""
        return (await self.resolve(sha)).pr


__all__ = [
    'FAILED_COMMIT_DESCRIPTION',
    'PR_NUMBER_PATTERNS',
    'SQUASH_PREFIX',
    'CommitResolver',
    'extract_branch_name',
    'extract_pr_number',
    'extract_pr_title',
    'failed_commit',
]
