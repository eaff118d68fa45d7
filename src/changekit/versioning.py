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


"""Version decisions: what the next release number should be.

Key Concepts (ELI5)::

    ┌─────────────────────┬────────────────────────────────────────────────┐
    │ Concept             │ ELI5 Explanation                               │
    ├─────────────────────┼────────────────────────────────────────────────┤
    │ BumpType            │ Which number goes up: major (breaking),       │
    │                     │ minor (features), patch (everything else).    │
    │                     │ ``sync`` catches up with the changelog;       │
    │                     │ ``none`` means leave the version alone.       │
    ├─────────────────────┼────────────────────────────────────────────────┤
    │ Idempotence         │ Running twice over the same commits must not  │
    │                     │ bump twice. The changelog remembers what was  │
    │                     │ already decided.                              │
    ├─────────────────────┼────────────────────────────────────────────────┤
    │ Released version    │ A version with a release tag. Only those are  │
    │                     │ safe to bump past for new commits.            │
    └─────────────────────┴────────────────────────────────────────────────┘

Decision order (first match wins)::

    no commits                              → none   "No commits in range"
    next version already in changelog       → none   "Version N already exists in changelog"
    current version in changelog, untagged  → none   "Version C already exists in changelog"
    current == next                         → none
    changelog latest > next                 → sync   to changelog latest
    otherwise                               → major / minor / patch
"""

from __future__ import annotations

import enum
import re
from collections.abc import Collection, Sequence
from dataclasses import dataclass

from changekit.changelog import ChangelogDocument, version_key
from changekit.commit_parsing import CommitType, SemanticCommit
from changekit.errors import E, ChangeKitError
from changekit.logging import get_logger

logger = get_logger(__name__)

_SEMVER_PATTERN: re.Pattern[str] = re.compile(r'^(\d+)\.(\d+)\.(\d+)$')


class BumpType(str, enum.Enum):
    """Outcome kinds of a version decision."""

    MAJOR = 'major'
    MINOR = 'minor'
    PATCH = 'patch'
    SYNC = 'sync'
    NONE = 'none'


@dataclass(frozen=True)
class VersionDecision:
    """What to do with a package's version.

    Attributes:
        current_version: Version in the manifest before the run.
        target_version: Version to release; equals ``current_version``
            whenever ``should_bump`` is false.
        bump_type: Kind of decision.
        should_bump: Whether the manifest and tag should move.
        reason: Human-readable explanation, always set.
        documented_version: When the decision is ``none`` because a
            version is already in the changelog, that version.
    """

    current_version: str
    target_version: str
    bump_type: BumpType
    should_bump: bool
    reason: str
    documented_version: str = ''

    def __post_init__(self) -> None:
        """Enforce that a non-bump leaves the version unchanged."""
        if not self.should_bump and self.target_version != self.current_version:
            raise ValueError('target_version must equal current_version when should_bump is false')


def parse_version(version: str) -> tuple[int, int, int]:
    """Split a strict ``MAJOR.MINOR.PATCH`` string.

    Raises:
        ChangeKitError: ``VERSION_INVALID`` for anything else.
    """
    m = _SEMVER_PATTERN.match(version.strip())
    if m is None:
        raise ChangeKitError(
            code=E.VERSION_INVALID,
            message=f'Version {version!r} is not valid (expected X.Y.Z)',
            hint='Use a version string like "1.2.3" (MAJOR.MINOR.PATCH).',
        )
    return int(m.group(1)), int(m.group(2)), int(m.group(3))


def bump_version(version: str, bump: BumpType) -> str:
    """Apply *bump* to *version*.

    ``major`` resets minor and patch, ``minor`` resets patch. ``sync``
    and ``none`` return the version unchanged.
    """
    major, minor, patch = parse_version(version)
    if bump == BumpType.MAJOR:
        return f'{major + 1}.0.0'
    if bump == BumpType.MINOR:
        return f'{major}.{minor + 1}.0'
    if bump == BumpType.PATCH:
        return f'{major}.{minor}.{patch + 1}'
    return version


def compute_bump(commits: Sequence[SemanticCommit]) -> BumpType:
    """Return the strongest bump the commits call for.

    Breaking beats feature beats everything else; an empty set is
    ``none``.
    """
    if not commits:
        return BumpType.NONE
    if any(c.is_breaking for c in commits):
        return BumpType.MAJOR
    if any(c.type == CommitType.FEAT for c in commits):
        return BumpType.MINOR
    return BumpType.PATCH


def _none(current: str, reason: str, documented: str = '') -> VersionDecision:
    return VersionDecision(
        current_version=current,
        target_version=current,
        bump_type=BumpType.NONE,
        should_bump=False,
        reason=reason,
        documented_version=documented,
    )


def determine_version(
    current_version: str,
    commits: Sequence[SemanticCommit],
    changelog: ChangelogDocument,
    *,
    released_versions: Collection[str] = frozenset(),
) -> VersionDecision:
    """Decide the next version of a package.

    Args:
        current_version: Version in the package manifest.
        commits: Commits in the release range.
        changelog: The package's existing changelog.
        released_versions: Versions that already have a release tag.

    Returns:
        The :class:`VersionDecision`.

    Raises:
        ChangeKitError: If ``current_version`` is not ``X.Y.Z`` (only
            checked when there are commits to release).
    """
    if not commits:
        return _none(current_version, 'No commits in range')

    bump = compute_bump(commits)
    next_version = bump_version(current_version, bump)

    if changelog.has_version(next_version):
        return _none(current_version, f'Version {next_version} already exists in changelog', next_version)

    if current_version == next_version:
        return _none(current_version, f'Version {current_version} is already applied')

    latest = changelog.latest_version()
    if latest is not None and version_key(latest) > version_key(next_version):
        logger.info('version_sync', current=current_version, changelog_latest=latest, computed=next_version)
        return VersionDecision(
            current_version=current_version,
            target_version=latest,
            bump_type=BumpType.SYNC,
            should_bump=True,
            reason=f'Changelog is ahead at {latest}; syncing from {current_version}',
        )

    if changelog.has_version(current_version) and current_version not in released_versions:
        return _none(current_version, f'Version {current_version} already exists in changelog', current_version)

    return VersionDecision(
        current_version=current_version,
        target_version=next_version,
        bump_type=bump,
        should_bump=True,
        reason=f'New {bump.value} version bump to {next_version}',
    )


__all__ = [
    'BumpType',
    'VersionDecision',
    'bump_version',
    'compute_bump',
    'determine_version',
    'parse_version',
]
