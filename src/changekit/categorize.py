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


"""Commit categorization: PR scoring and full-set partition.

Key Concepts (ELI5)::

    ┌─────────────────────┬────────────────────────────────────────────────┐
    │ Concept             │ ELI5 Explanation                               │
    ├─────────────────────┼────────────────────────────────────────────────┤
    │ PR scoring          │ Every commit in a PR votes for a category     │
    │                     │ (feat = 3 votes for features, fix = 2 for     │
    │                     │ bugfixes, ...). Most votes wins.              │
    ├─────────────────────┼────────────────────────────────────────────────┤
    │ Orphan commit       │ A commit that did not arrive through a PR.    │
    │                     │ It is filed by its own type.                  │
    ├─────────────────────┼────────────────────────────────────────────────┤
    │ Partition           │ Every commit lands in exactly one bucket:     │
    │                     │ under its PR, or on its own. Never both.      │
    └─────────────────────┴────────────────────────────────────────────────┘

Partition flow::

    commits ──▶ merges with PR info ──▶ PR bucket[pr.category]
        │            (merge + its PR commits present in the input)
        │
        └────▶ everything not yet placed ──▶ orphan bucket[categorize_commit()]
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

from changekit.commit_parsing import (
    PR_SCORED_CATEGORIES,
    SECTION_ORDER,
    Category,
    CommitMessage,
    CommitType,
    SemanticCommit,
)
from changekit.logging import get_logger

logger = get_logger(__name__)

# Description keywords of chore/deps commits.
DEPENDENCY_KEYWORDS: tuple[str, ...] = ('dep', 'update', 'upgrade', 'bump')
INFRASTRUCTURE_KEYWORDS: tuple[str, ...] = ('ci', 'build', 'workflow')

# Merge message fragments that identify a dependency-bot PR.
_BOT_MARKERS: tuple[str, ...] = ('renovate', 'dependabot')

# Per-type score contributions: (category, points).
_TYPE_SCORES: dict[CommitType, tuple[Category, int]] = {
    CommitType.FEAT: (Category.FEATURES, 3),
    CommitType.FIX: (Category.BUGFIXES, 2),
    CommitType.DOCS: (Category.DOCUMENTATION, 2),
    CommitType.REFACTOR: (Category.REFACTORING, 2),
    CommitType.STYLE: (Category.REFACTORING, 2),
    CommitType.PERF: (Category.REFACTORING, 2),
    CommitType.CI: (Category.INFRASTRUCTURE, 3),
    CommitType.BUILD: (Category.INFRASTRUCTURE, 3),
}

# Orphan type → category (chore/deps handled by keyword).
_ORPHAN_CATEGORIES: dict[CommitType, Category] = {
    CommitType.FEAT: Category.FEATURES,
    CommitType.FIX: Category.BUGFIXES,
    CommitType.DOCS: Category.DOCUMENTATION,
    CommitType.REFACTOR: Category.REFACTORING,
    CommitType.STYLE: Category.REFACTORING,
    CommitType.TEST: Category.INFRASTRUCTURE,
}


def _keyword_category(description: str) -> Category | None:
    """Classify a chore/deps description by keyword; ``None`` if no match."""
    lowered = description.lower()
    if any(word in lowered for word in DEPENDENCY_KEYWORDS):
        return Category.DEPENDENCIES
    if any(word in lowered for word in INFRASTRUCTURE_KEYWORDS):
        return Category.INFRASTRUCTURE
    return None


def score_pr_commits(commits: Iterable[SemanticCommit]) -> dict[Category, int]:
    """Return the per-category score of a PR's commits.

    Every category in :data:`PR_SCORED_CATEGORIES` is present in the
    result, in tie-break order.
    """
    scores = dict.fromkeys(PR_SCORED_CATEGORIES, 0)
    for commit in commits:
        if commit.type in (CommitType.CHORE, CommitType.DEPS):
            category = _keyword_category(commit.description)
            if category == Category.DEPENDENCIES:
                scores[category] += 5
            elif category == Category.INFRASTRUCTURE:
                scores[category] += 2
            continue
        entry = _TYPE_SCORES.get(commit.type)
        if entry is not None:
            category, points = entry
            scores[category] += points
    return scores


def categorize_pr(commits: Sequence[SemanticCommit], merge_message: CommitMessage) -> Category:
    """Assign a PR its dominant category.

    A dependency-bot merge short-circuits to ``dependencies``. Otherwise
    the highest score wins, ties go to the category listed first in
    :data:`PR_SCORED_CATEGORIES`, and an all-zero score is ``other``.

    Args:
        commits: The PR's resolved commits.
        merge_message: The parsed merge commit message.

    Returns:
        The PR's category. Never ``breaking``.
    """
    subject = merge_message.description.lower()
    if any(marker in subject for marker in _BOT_MARKERS) or any(
        'dependency' in line.lower() for line in merge_message.body_lines
    ):
        return Category.DEPENDENCIES

    scores = score_pr_commits(commits)
    best = max(scores.values())
    if best == 0:
        return Category.OTHER
    # dict preserves tie-break order; first maximum wins.
    return next(cat for cat, score in scores.items() if score == best)


def categorize_commit(commit: SemanticCommit) -> Category:
    """Return the orphan bucket of a commit that is not part of a PR."""
    if commit.is_breaking:
        return Category.BREAKING
    if commit.type in (CommitType.CHORE, CommitType.DEPS):
        return _keyword_category(commit.description) or Category.OTHER
    return _ORPHAN_CATEGORIES.get(commit.type, Category.OTHER)


@dataclass
class CategorizedCommits:
    """The two bucket maps produced by :func:`partition_commits`.

    Attributes:
        pr_buckets: PR category → merge commits followed by the PR
            commits they absorbed, in input order of the merges.
        orphan_buckets: Category → commits outside any PR, input order.
        pr_heads: Hashes of the merge commits that own a PR entry.
    """

    pr_buckets: dict[Category, list[SemanticCommit]] = field(default_factory=dict)
    orphan_buckets: dict[Category, list[SemanticCommit]] = field(default_factory=dict)
    pr_heads: list[str] = field(default_factory=list)

    def pull_requests(self, category: Category) -> list[SemanticCommit]:
        """Return the merge commits heading PR entries in *category*."""
        heads = set(self.pr_heads)
        return [c for c in self.pr_buckets.get(category, []) if c.hash in heads]

    def orphans(self, category: Category) -> list[SemanticCommit]:
        """Return the orphan commits in *category*."""
        return list(self.orphan_buckets.get(category, []))

    def total(self) -> int:
        """Return the number of commits across every bucket."""
        return sum(len(b) for b in self.pr_buckets.values()) + sum(len(b) for b in self.orphan_buckets.values())

    def is_empty(self) -> bool:
        """Return whether no bucket holds any commit."""
        return self.total() == 0


def partition_commits(commits: Sequence[SemanticCommit]) -> CategorizedCommits:
    """Split a commit set into PR-level and orphan buckets.

    Each input commit is placed exactly once. A merge commit with PR
    info claims itself and every PR commit that is also in *commits*;
    PR commits outside the input stay reachable through ``merge.pr`` but
    are not placed. When two merges claim the same commit the first one
    in input order keeps it.

    Args:
        commits: The commits of one revision range, newest first.

    Returns:
        The populated :class:`CategorizedCommits`, with buckets keyed in
        :data:`SECTION_ORDER`.
    """
    by_hash = {c.hash: c for c in commits}
    placed: set[str] = set()
    result = CategorizedCommits()

    for commit in commits:
        if not commit.is_merge or commit.pr is None or commit.hash in placed:
            continue
        bucket = result.pr_buckets.setdefault(commit.pr.category, [])
        bucket.append(commit)
        placed.add(commit.hash)
        result.pr_heads.append(commit.hash)
        for pr_commit in commit.pr.commits:
            if pr_commit.hash in by_hash and pr_commit.hash not in placed:
                bucket.append(by_hash[pr_commit.hash])
                placed.add(pr_commit.hash)

    for commit in commits:
        if commit.hash in placed:
            continue
        result.orphan_buckets.setdefault(categorize_commit(commit), []).append(commit)
        placed.add(commit.hash)

    result.pr_buckets = {c: result.pr_buckets[c] for c in SECTION_ORDER if c in result.pr_buckets}
    result.orphan_buckets = {c: result.orphan_buckets[c] for c in SECTION_ORDER if c in result.orphan_buckets}

    logger.debug(
        'commits_partitioned',
        total=len(commits),
        pr_entries=len(result.pr_heads),
        pr_commits=sum(len(b) for b in result.pr_buckets.values()),
        orphans=sum(len(b) for b in result.orphan_buckets.values()),
    )
    return result


__all__ = [
    'DEPENDENCY_KEYWORDS',
    'INFRASTRUCTURE_KEYWORDS',
    'CategorizedCommits',
    'categorize_commit',
    'categorize_pr',
    'partition_commits',
    'score_pr_commits',
]
