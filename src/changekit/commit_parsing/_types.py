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


"""Pure types for commit intelligence.

This module has **zero** runtime dependencies beyond the standard library.
Everything here is a frozen dataclass or enum: no I/O, no logging, no
side effects.

Key Concepts (ELI5)::

    ┌─────────────────────┬────────────────────────────────────────────────┐
    │ Concept             │ ELI5 Explanation                               │
    ├─────────────────────┼────────────────────────────────────────────────┤
    │ CommitType          │ The word before the colon in ``feat: add X``. │
    │                     │ Anything we don't recognise becomes ``other``. │
    ├─────────────────────┼────────────────────────────────────────────────┤
    │ Category            │ The changelog shelf a commit or PR goes on:   │
    │                     │ features, bugfixes, dependencies, ...         │
    ├─────────────────────┼────────────────────────────────────────────────┤
    │ SemanticCommit      │ One commit after parsing: who, when, what     │
    │                     │ kind of change, and (for merges) which PR.    │
    ├─────────────────────┼────────────────────────────────────────────────┤
    │ PullRequestInfo     │ What we recovered about a merged PR: number,  │
    │                     │ category, and the commits it brought in.      │
    └─────────────────────┴────────────────────────────────────────────────┘
"""

from __future__ import annotations

import enum
from dataclasses import dataclass


class CommitType(str, enum.Enum):
    """Closed vocabulary of commit types."""

    FEAT = 'feat'
    FIX = 'fix'
    DOCS = 'docs'
    STYLE = 'style'
    REFACTOR = 'refactor'
    PERF = 'perf'
    TEST = 'test'
    BUILD = 'build'
    CI = 'ci'
    CHORE = 'chore'
    DEPS = 'deps'
    REVERT = 'revert'
    MERGE = 'merge'
    OTHER = 'other'


class Category(str, enum.Enum):
    """Changelog categories.

    ``BREAKING`` is only ever assigned to orphan commits; PRs are always
    placed under one of the other members.
    """

    BREAKING = 'breaking'
    FEATURES = 'features'
    BUGFIXES = 'bugfixes'
    DEPENDENCIES = 'dependencies'
    INFRASTRUCTURE = 'infrastructure'
    DOCUMENTATION = 'documentation'
    REFACTORING = 'refactoring'
    OTHER = 'other'


# Categories a PR can be scored into, in tie-break order (first wins).
PR_SCORED_CATEGORIES: tuple[Category, ...] = (
    Category.FEATURES,
    Category.BUGFIXES,
    Category.DEPENDENCIES,
    Category.INFRASTRUCTURE,
    Category.DOCUMENTATION,
    Category.REFACTORING,
)

# Rendering order of changelog sections.
SECTION_ORDER: tuple[Category, ...] = (
    Category.BREAKING,
    Category.FEATURES,
    Category.BUGFIXES,
    Category.DEPENDENCIES,
    Category.INFRASTRUCTURE,
    Category.DOCUMENTATION,
    Category.REFACTORING,
    Category.OTHER,
)

CATEGORY_TITLES: dict[Category, str] = {
    Category.BREAKING: '💥 Breaking Changes',
    Category.FEATURES: '🚀 Features',
    Category.BUGFIXES: '🐛 Bug Fixes',
    Category.DEPENDENCIES: '📦 Dependencies',
    Category.INFRASTRUCTURE: '🏗️ Infrastructure',
    Category.DOCUMENTATION: '📚 Documentation',
    Category.REFACTORING: '🔄 Refactoring',
    Category.OTHER: '🔀 Other Changes',
}


@dataclass(frozen=True)
class CommitTypeDefinition:
    """Presentation and lint metadata for one commit type.

    Attributes:
        type: The commit type.
        emoji: Emoji prefixed to the type in PR commit lists.
        badge_color: Hex colour (no ``#``) of the PR badge.
        breaking_allowed: Whether ``type!:`` is accepted by the linter.
    """

    type: CommitType
    emoji: str
    badge_color: str
    breaking_allowed: bool


COMMIT_TYPES: dict[CommitType, CommitTypeDefinition] = {
    d.type: d
    for d in (
        CommitTypeDefinition(CommitType.FEAT, '🚀', '00D4AA', True),
        CommitTypeDefinition(CommitType.FIX, '🐛', 'EF4444', True),
        CommitTypeDefinition(CommitType.DOCS, '📚', '646CFF', False),
        CommitTypeDefinition(CommitType.STYLE, '🎨', '8B5CF6', False),
        CommitTypeDefinition(CommitType.REFACTOR, '🔧', '007ACC', True),
        CommitTypeDefinition(CommitType.PERF, '⚡', '60A5FA', True),
        CommitTypeDefinition(CommitType.TEST, '🧪', '10B981', False),
        CommitTypeDefinition(CommitType.BUILD, '🏗️', 'F59E0B', True),
        CommitTypeDefinition(CommitType.CI, '👷', '2496ED', False),
        CommitTypeDefinition(CommitType.CHORE, '🔨', '495057', False),
        CommitTypeDefinition(CommitType.DEPS, '📦', '059669', True),
        CommitTypeDefinition(CommitType.REVERT, '⏪', 'DC2626', True),
        CommitTypeDefinition(CommitType.MERGE, '🔀', '6B7280', False),
        CommitTypeDefinition(CommitType.OTHER, '⚠️', '6B7280', False),
    )
}


@dataclass(frozen=True)
class CommitMessage:
    """The message-derived half of a :class:`SemanticCommit`.

    This is what the parser produces from a message string alone; the
    identity fields (hash, author, date) come from the VCS.
    """

    type: CommitType
    description: str
    scopes: tuple[str, ...] = ()
    body_lines: tuple[str, ...] = ()
    is_breaking: bool = False
    is_merge: bool = False
    is_dependency: bool = False


@dataclass(frozen=True)
class PRStats:
    """Aggregate numbers about a PR's commit set."""

    commit_count: int


@dataclass(frozen=True)
class PullRequestInfo:
    """What was recovered about the PR behind a merge commit.

    Attributes:
        pr_number: The PR number as written (``"123"``), or ``None`` if
            the merge message had no parseable reference.
        category: The PR's dominant :class:`Category`.
        commits: Commits from the merged branch, oldest last as the VCS
            reports them. Never contains the merge commit itself.
        branch_name: Source branch named in the merge message.
        title: PR title (first body line of a GitHub merge), or ``''``.
    """

    pr_number: str | None
    category: Category
    commits: tuple[SemanticCommit, ...] = ()
    branch_name: str = 'main'
    title: str = ''

    @property
    def stats(self) -> PRStats:
        """Return the PR's commit statistics."""
        return PRStats(commit_count=len(self.commits))


@dataclass(frozen=True)
class SemanticCommit:
    """One parsed commit.

    Attributes:
        hash: Full commit hash.
        author: Author name.
        date: Author date as reported by the VCS.
        type: Commit type.
        description: Single-line summary.
        scopes: Scope labels in message order.
        body_lines: Non-empty lines after the subject.
        is_breaking: ``!`` marker or ``BREAKING CHANGE:`` footer present.
        is_merge: Message starts with a merge marker.
        is_dependency: Message looks like a dependency update.
        pr: Pull request info; only ever set on merge commits.
    """

    hash: str
    author: str
    date: str
    type: CommitType
    description: str
    scopes: tuple[str, ...] = ()
    body_lines: tuple[str, ...] = ()
    is_breaking: bool = False
    is_merge: bool = False
    is_dependency: bool = False
    pr: PullRequestInfo | None = None

    def __post_init__(self) -> None:
        """Enforce that only merge commits carry PR info."""
        if self.pr is not None and not self.is_merge:
            raise ValueError(f'Commit {self.hash[:8]} is not a merge commit but has PR info')

    @property
    def short_hash(self) -> str:
        """Return the 7-character abbreviated hash."""
        return self.hash[:7]

    @property
    def message(self) -> CommitMessage:
        """Return the message-derived fields."""
        return CommitMessage(
            type=self.type,
            description=self.description,
            scopes=self.scopes,
            body_lines=self.body_lines,
            is_breaking=self.is_breaking,
            is_merge=self.is_merge,
            is_dependency=self.is_dependency,
        )

    @classmethod
    def from_message(
        cls,
        message: CommitMessage,
        *,
        hash: str,  # noqa: A002
        author: str = '',
        date: str = '',
        pr: PullRequestInfo | None = None,
    ) -> SemanticCommit:
        """Combine parsed message fields with identity fields."""
        return cls(
            hash=hash,
            author=author,
            date=date,
            type=message.type,
            description=message.description,
            scopes=message.scopes,
            body_lines=message.body_lines,
            is_breaking=message.is_breaking,
            is_merge=message.is_merge,
            is_dependency=message.is_dependency,
            pr=pr,
        )
