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


"""Per-package versioning sessions.

A :class:`ChangelogManager` owns one package's run from revision range
to persisted files. Stages run strictly in order and never re-enter an
earlier one::

    set_range(from, to)
        │  vcs.log → CommitResolver → partition_commits
        │  read manifest version + existing changelog
        │  determine_version
        ▼
    generate_changelog()      rendered fragment for one version
        ▼
    merge_with_existing()     fragment merged into the on-disk text
        ▼
    persist()                 changelog written once, manifest bumped

Files are read during :meth:`ChangelogManager.set_range` and written
only by :meth:`ChangelogManager.persist`, once each.

:func:`run_packages` runs one session per package. A
:class:`~changekit.errors.ChangeKitError` fails that package only; the
others still run, and every outcome is reported as a
:class:`PackageResult`.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field

from changekit.backends.manifest import (
    Package,
    read_changelog,
    read_version,
    write_changelog,
    write_version,
)
from changekit.backends.vcs import VCS, revision_range
from changekit.categorize import CategorizedCommits, partition_commits
from changekit.changelog import UNRELEASED, ChangelogDocument, merge_changelogs
from changekit.commit_parsing import SemanticCommit
from changekit.errors import E, ChangeKitError
from changekit.logging import bind_package, get_logger
from changekit.pr import CommitResolver
from changekit.render import render_changelog
from changekit.versioning import VersionDecision, determine_version
from changekit.workspace import ROOT_PACKAGE, WorkspaceContext

logger = get_logger(__name__)


@dataclass(frozen=True)
class SessionSnapshot:
    """What a session found and decided, for reporting.

    Attributes:
        package: Package name.
        from_ref: Start of the range (``None`` means all history).
        to_ref: End of the range.
        current_version: Manifest version at session start.
        decision: The version decision.
        label: Changelog block that will be written (a version or
            ``Unreleased``), or ``None`` when there is nothing to write.
        commit_count: Commits in the range for this package.
        pull_requests: PR entries in the range.
        categories: Category name → number of commits in that bucket
            (PR and orphan buckets combined).
    """

    package: str
    from_ref: str | None
    to_ref: str
    current_version: str
    decision: VersionDecision
    label: str | None
    commit_count: int
    pull_requests: int
    categories: dict[str, int] = field(default_factory=dict)


@dataclass(frozen=True)
class PackageResult:
    """Outcome of one package session.

    Attributes:
        package: Package name.
        ok: Whether the session completed.
        snapshot: Session snapshot; ``None`` when the session failed
            before a decision was made.
        changelog_written: Whether the changelog file was written.
        manifest_bumped: Whether the manifest version was rewritten.
        error: Failure message, ``''`` on success.
        error_code: Failure code value, ``''`` on success.
        hint: Suggested remedy for the failure.
    """

    package: str
    ok: bool
    snapshot: SessionSnapshot | None = None
    changelog_written: bool = False
    manifest_bumped: bool = False
    error: str = ''
    error_code: str = ''
    hint: str = ''


def _label_for(decision: VersionDecision, commits: Sequence[SemanticCommit]) -> str | None:
    if decision.should_bump:
        return decision.target_version
    if decision.documented_version:
        return decision.documented_version
    if commits:
        return UNRELEASED
    return None


class ChangelogManager:
    """One package's versioning session."""

    def __init__(self, package: Package, context: WorkspaceContext, vcs: VCS) -> None:
        """Initialize the session.

        Args:
            package: The package to version.
            context: Run context (configuration and workspace layout).
            vcs: History backend.
        """
        self._package = package
        self._context = context
        self._vcs = vcs
        self._from_ref: str | None = None
        self._to_ref = 'HEAD'
        self._commits: list[SemanticCommit] | None = None
        self._categorized: CategorizedCommits | None = None
        self._current_version = ''
        self._existing = ''
        self._decision: VersionDecision | None = None

    @property
    def package(self) -> Package:
        """Return the package this session versions."""
        return self._package

    def _require(self, stage: str) -> tuple[list[SemanticCommit], CategorizedCommits, VersionDecision]:
        if self._commits is None or self._categorized is None or self._decision is None:
            raise ChangeKitError(
                code=E.SESSION_NOT_READY,
                message=f'{stage}() called before set_range() for package {self._package.name}',
                hint='Call await manager.set_range() first.',
                package=self._package.name,
            )
        return self._commits, self._categorized, self._decision

    async def _select_hashes(self, rev_range: str) -> tuple[list[str], set[str] | None]:
        """Return the candidate hashes (newest first) and the path-filtered set.

        The path-filtered set is ``None`` for the root package, which
        owns every commit.
        """
        all_hashes = await self._vcs.log(rev_range)
        if self._package.name == ROOT_PACKAGE or self._package.relpath == '.':
            return all_hashes, None
        path_hashes = set(await self._vcs.log(rev_range, paths=[self._package.relpath]))
        merge_hashes = set(await self._vcs.log(rev_range, merges=True))
        return [h for h in all_hashes if h in path_hashes or h in merge_hashes], path_hashes

    def _touches_package(self, commit: SemanticCommit, path_hashes: set[str]) -> bool:
        if commit.hash in path_hashes:
            return True
        if commit.pr is None:
            return False
        return any(c.hash in path_hashes for c in commit.pr.commits)

    async def set_range(self, from_ref: str | None = None, to_ref: str = 'HEAD') -> None:
        """Analyze the commits between *from_ref* and *to_ref*.

        Args:
            from_ref: Start of the range (exclusive). ``None`` uses the
                latest ``{tag_prefix}*`` tag, or all history when there
                is none. ``''`` and ``0.0.0`` mean all history.
            to_ref: End of the range (inclusive).

        Raises:
            ChangeKitError: If the range cannot be listed, the manifest
                cannot be read, or the current version is invalid.
        """
        config = self._context.config
        name = self._package.name
        if from_ref is None:
            from_ref = await self._vcs.latest_tag(f'{config.tag_prefix}*')
        self._from_ref = from_ref
        self._to_ref = to_ref
        rev_range = revision_range(from_ref, to_ref)

        hashes, path_hashes = await self._select_hashes(rev_range)
        resolver = CommitResolver(
            self._vcs,
            max_depth=config.max_pr_depth,
            max_pr_commits=config.max_pr_commits,
            concurrency=config.concurrency,
            default_branch=config.default_branch,
        )
        commits = await resolver.resolve_many(hashes)
        if path_hashes is not None:
            commits = [c for c in commits if self._touches_package(c, path_hashes)]

        self._current_version = read_version(self._package)
        self._existing = read_changelog(self._package)
        changelog = ChangelogDocument.parse(self._existing)

        tags = await self._vcs.tags(f'{config.tag_prefix}*')
        prefix_len = len(config.tag_prefix)
        released = frozenset(t[prefix_len:] for t in tags)

        self._decision = determine_version(
            self._current_version,
            commits,
            changelog,
            released_versions=released,
        )
        self._commits = commits
        self._categorized = partition_commits(commits)

        logger.info(
            'session_analyzed',
            package=name,
            rev_range=rev_range,
            commits=len(commits),
            bump=self._decision.bump_type.value,
            target=self._decision.target_version,
            reason=self._decision.reason,
        )

    def commit_count(self) -> int:
        """Return the number of commits in the analyzed range."""
        commits, _, _ = self._require('commit_count')
        return len(commits)

    def snapshot(self) -> SessionSnapshot:
        """Return what the session found and decided."""
        commits, categorized, decision = self._require('snapshot')
        categories: dict[str, int] = {}
        for buckets in (categorized.pr_buckets, categorized.orphan_buckets):
            for category, bucket in buckets.items():
                categories[category.value] = categories.get(category.value, 0) + len(bucket)
        return SessionSnapshot(
            package=self._package.name,
            from_ref=self._from_ref,
            to_ref=self._to_ref,
            current_version=self._current_version,
            decision=decision,
            label=_label_for(decision, commits),
            commit_count=len(commits),
            pull_requests=len(categorized.pr_heads),
            categories=categories,
        )

    def generate_changelog(self) -> str:
        """Render the fragment for this session's version block.

        Returns:
            The fragment, or ``''`` when there is nothing to write.
        """
        commits, categorized, decision = self._require('generate_changelog')
        label = _label_for(decision, commits)
        if label is None:
            return ''
        config = self._context.config
        return render_changelog(
            categorized,
            label,
            template=config.template,
            repository_url=config.repository_url,
            tag_prefix=config.tag_prefix,
        )

    def merge_with_existing(self) -> str:
        """Return the existing changelog with this session's block merged in."""
        fragment = self.generate_changelog()
        if not fragment:
            return self._existing
        return merge_changelogs(self._existing, fragment)

    async def persist(self, *, dry_run: bool = False, bump_manifest: bool = True) -> PackageResult:
        """Write the merged changelog and, when bumping, the manifest version.

        Args:
            dry_run: Compute everything but write nothing.
            bump_manifest: Rewrite the manifest version when the decision
                says to bump.

        Returns:
            The session's :class:`PackageResult`.

        Raises:
            ChangeKitError: If a file cannot be written.
        """
        snapshot = self.snapshot()
        if snapshot.label is None:
            logger.info('session_nothing_to_write', package=self._package.name, reason=snapshot.decision.reason)
            return PackageResult(package=self._package.name, ok=True, snapshot=snapshot)

        merged = self.merge_with_existing()
        if dry_run:
            logger.info('session_dry_run', package=self._package.name, label=snapshot.label)
            return PackageResult(package=self._package.name, ok=True, snapshot=snapshot)

        changelog_written = False
        if merged != self._existing:
            write_changelog(self._package, merged)
            changelog_written = True

        manifest_bumped = False
        decision = snapshot.decision
        if bump_manifest and decision.should_bump and decision.target_version != self._current_version:
            if self._package.manifest_path is None:
                logger.warning('manifest_missing_skip_bump', package=self._package.name)
            else:
                write_version(self._package, decision.target_version)
                manifest_bumped = True

        return PackageResult(
            package=self._package.name,
            ok=True,
            snapshot=snapshot,
            changelog_written=changelog_written,
            manifest_bumped=manifest_bumped,
        )


async def run_packages(
    context: WorkspaceContext,
    vcs: VCS,
    names: Sequence[str] | None = None,
    *,
    from_ref: str | None = None,
    to_ref: str = 'HEAD',
    dry_run: bool = False,
    bump_manifest: bool = True,
) -> list[PackageResult]:
    """Run one session per package, sequentially.

    Args:
        context: Run context.
        vcs: History backend.
        names: Packages to run; all discovered packages when ``None``.
        from_ref: Range start passed to every session.
        to_ref: Range end passed to every session.
        dry_run: Write nothing.
        bump_manifest: Rewrite manifest versions on bumps.

    Returns:
        One :class:`PackageResult` per requested package, in order.
    """
    results: list[PackageResult] = []
    for name in names if names is not None else context.package_names:
        try:
            with bind_package(name):
                manager = ChangelogManager(context.package(name), context, vcs)
                await manager.set_range(from_ref, to_ref)
                results.append(await manager.persist(dry_run=dry_run, bump_manifest=bump_manifest))
        except ChangeKitError as exc:
            err = exc if exc.package else exc.with_package(name)
            logger.error('package_failed', package=name, code=err.code.value, error=err.message, hint=err.hint)
            results.append(
                PackageResult(
                    package=name,
                    ok=False,
                    error=err.message,
                    error_code=err.code.value,
                    hint=err.hint,
                )
            )
    return results


__all__ = [
    'ChangelogManager',
    'PackageResult',
    'SessionSnapshot',
    'run_packages',
]
