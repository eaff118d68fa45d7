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


"""Revision-history queries.

The engine only ever reads history: ordered hashes for a revision range,
the metadata of one commit, and the release tags. :class:`VCS` is the
protocol the rest of changekit depends on; :class:`GitCLIBackend`
implements it over the ``git`` executable with asyncio subprocesses so
PR resolution can fan out concurrently.

Usage::

    from changekit.backends.vcs import GitCLIBackend, revision_range

    vcs = GitCLIBackend(Path('.'))
    hashes = await vcs.log(revision_range('v1.2.0', 'HEAD'), paths=['packages/api'])
    record = await vcs.show(hashes[0])
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol, runtime_checkable

from changekit.errors import E, ChangeKitError
from changekit.logging import get_logger

logger = get_logger(__name__)

# Start refs that mean "from the beginning of history".
_ROOT_REFS: frozenset[str] = frozenset({'', '0.0.0'})

# Field separator for ``git show --format``; NUL never appears in messages.
_SEP = '%x00'


@dataclass(frozen=True)
class CommitRecord:
    """Raw metadata of one commit.

    Attributes:
        hash: Full commit hash.
        author: Author name.
        date: Author date, strict ISO 8601.
        subject: First line of the message.
        body: Remainder of the message (may be empty).
        parents: Parent hashes, first parent first.
    """

    hash: str
    author: str
    date: str
    subject: str
    body: str = ''
    parents: tuple[str, ...] = ()

    @property
    def message(self) -> str:
        """Return subject and body joined as one message."""
        if not self.body:
            return self.subject
        return f'{self.subject}\n\n{self.body}'


def revision_range(from_ref: str | None, to_ref: str = 'HEAD') -> str:
    """Build a ``from..to`` range; an empty or ``0.0.0`` start means all history."""
    if from_ref is None or from_ref in _ROOT_REFS:
        return to_ref
    return f'{from_ref}..{to_ref}'


def pr_range(merge_hash: str) -> str:
    """Return the range of commits a merge brought in from its second parent."""
    return f'{merge_hash}^1..{merge_hash}^2'


@runtime_checkable
class VCS(Protocol):
    """Read-only revision history queries."""

    async def log(
        self,
        rev_range: str,
        *,
        paths: list[str] | None = None,
        merges: bool = False,
    ) -> list[str]:
        """Return commit hashes in *rev_range*, newest first.

        Args:
            rev_range: A revision or ``from..to`` range.
            paths: Only commits touching these paths (relative to the
                repository root).
            merges: Only merge commits.
        """
        ...

    async def show(self, sha: str) -> CommitRecord:
        """Return the metadata of one commit."""
        ...

    async def tags(self, pattern: str = '*') -> list[str]:
        """Return tags matching a glob *pattern*, highest version first."""
        ...

    async def latest_tag(self, pattern: str = '*') -> str | None:
        """Return the highest tag matching *pattern*, or ``None``."""
        ...


class GitCLIBackend:
    """:class:`VCS` implementation that shells out to ``git``."""

    def __init__(self, repo_root: Path, *, executable: str = 'git') -> None:
        """Initialize the backend.

        Args:
            repo_root: Directory inside the repository; commands run here.
            executable: Name or path of the git binary.
        """
        self._root = repo_root
        self._executable = executable

    async def _git(self, *args: str) -> str:
        cmd = [self._executable, *args]
        try:
            proc = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=self._root,
            )
        except FileNotFoundError as exc:
            raise ChangeKitError(
                code=E.VCS_COMMAND_FAILED,
                message=f'{self._executable!r} executable not found',
                hint='Install git and make sure it is on PATH.',
            ) from exc
        stdout, stderr = await proc.communicate()
        if proc.returncode != 0:
            raise ChangeKitError(
                code=E.VCS_COMMAND_FAILED,
                message=f'{" ".join(cmd)} failed: {stderr.decode("utf-8", "replace").strip()}',
                hint='Check that the revision range exists in this clone (fetch tags and full history).',
            )
        return stdout.decode('utf-8', 'replace')

    async def log(
        self,
        rev_range: str,
        *,
        paths: list[str] | None = None,
        merges: bool = False,
    ) -> list[str]:
        """Return commit hashes in *rev_range*, newest first."""
        args = ['log', '--format=%H']
        if merges:
            args.append('--merges')
        args.append(rev_range)
        if paths:
            args.extend(['--', *paths])
        out = await self._git(*args)
        hashes = [line.strip() for line in out.splitlines() if line.strip()]
        logger.debug('vcs_log', rev_range=rev_range, paths=paths or '(all)', merges=merges, count=len(hashes))
        return hashes

    async def show(self, sha: str) -> CommitRecord:
        """Return the metadata of one commit."""
        fmt = _SEP.join(['%H', '%an', '%aI', '%P', '%s', '%b'])
        out = await self._git('show', '-s', f'--format={fmt}', sha)
        parts = out.split('\x00', 5)
        if len(parts) < 6:
            raise ChangeKitError(
                code=E.VCS_COMMAND_FAILED,
                message=f'Unexpected git show output for {sha}',
            )
        commit_hash, author, date, parents, subject, body = parts
        return CommitRecord(
            hash=commit_hash.strip(),
            author=author,
            date=date,
            subject=subject,
            body=body.strip(),
            parents=tuple(parents.split()),
        )

    async def tags(self, pattern: str = '*') -> list[str]:
        """Return tags matching *pattern*, highest version first."""
        out = await self._git('tag', '--list', pattern, '--sort=-v:refname')
        return [line.strip() for line in out.splitlines() if line.strip()]

    async def latest_tag(self, pattern: str = '*') -> str | None:
        """Return the highest tag matching *pattern*, or ``None``."""
        tags = await self.tags(pattern)
        return tags[0] if tags else None


__all__ = [
    'VCS',
    'CommitRecord',
    'GitCLIBackend',
    'pr_range',
    'revision_range',
]
