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


"""Tests for changekit.manager."""

from __future__ import annotations

import asyncio
from pathlib import Path

import pytest
from changekit.backends.manifest import read_version
from changekit.changelog import UNRELEASED, ChangelogDocument
from changekit.config import ChangeKitConfig
from changekit.errors import E, ChangeKitError
from changekit.logging import configure_logging
from changekit.manager import ChangelogManager, run_packages
from changekit.versioning import BumpType
from changekit.workspace import ROOT_PACKAGE, WorkspaceContext, load_workspace
from conftest import FakeVCS

configure_logging(quiet=True)

_REPO = 'https://github.com/acme/mono'


def _write(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding='utf-8')


def _workspace(root: Path, *, root_version: str = '1.0.0', core_version: str = '0.2.0') -> WorkspaceContext:
    _write(root / 'pyproject.toml', f'[project]\nname = "mono"\nversion = "{root_version}"\n')
    _write(root / 'packages' / 'core' / 'pyproject.toml', f'[project]\nname = "core"\nversion = "{core_version}"\n')
    return load_workspace(root, config=ChangeKitConfig(), repository_url=_REPO, tag_prefix='v')


def _history(vcs: FakeVCS) -> None:
    vcs.commit('chore: init', files=('pyproject.toml',))
    vcs.tag('v1.0.0')
    vcs.commit('feat(core): add cache', files=('packages/core/cache.py',))
    vcs.commit('fix: root bug', files=('main.py',))


def _session(ctx: WorkspaceContext, vcs: FakeVCS, name: str = ROOT_PACKAGE) -> ChangelogManager:
    return ChangelogManager(ctx.package(name), ctx, vcs)


class TestChangelogManager:
    """Tests for a single package session."""

    def test_root_release(self, tmp_path: Path, vcs: FakeVCS) -> None:
        """The root package sees every commit since the last tag."""
        ctx = _workspace(tmp_path)
        _history(vcs)
        manager = _session(ctx, vcs)

        asyncio.run(manager.set_range())
        snap = manager.snapshot()

        assert snap.from_ref == 'v1.0.0'
        assert manager.commit_count() == 2
        assert snap.decision.bump_type == BumpType.MINOR
        assert snap.decision.target_version == '1.1.0'
        assert snap.label == '1.1.0'
        assert snap.categories == {'features': 1, 'bugfixes': 1}

        result = asyncio.run(manager.persist())

        assert result.ok
        assert result.changelog_written
        assert result.manifest_bumped
        assert read_version(ctx.package(ROOT_PACKAGE)) == '1.1.0'
        text = (tmp_path / 'CHANGELOG.md').read_text(encoding='utf-8')
        assert text.startswith('# Changelog\n')
        assert '## v1.1.0' in text
        assert '- **feat(core)**: add cache - alice' in text
        assert f'({_REPO}/commit/' in text

    def test_second_run_is_idempotent(self, tmp_path: Path, vcs: FakeVCS) -> None:
        """Re-running over the same range changes nothing."""
        ctx = _workspace(tmp_path)
        _history(vcs)
        first = _session(ctx, vcs)
        asyncio.run(first.set_range())
        asyncio.run(first.persist())
        before = (tmp_path / 'CHANGELOG.md').read_text(encoding='utf-8')

        second = _session(ctx, vcs)
        asyncio.run(second.set_range())
        result = asyncio.run(second.persist())

        assert result.snapshot is not None
        assert result.snapshot.decision.should_bump is False
        assert result.snapshot.decision.reason == 'Version 1.1.0 already exists in changelog'
        assert result.snapshot.label == '1.1.0'
        assert not result.changelog_written
        assert not result.manifest_bumped
        assert (tmp_path / 'CHANGELOG.md').read_text(encoding='utf-8') == before
        assert read_version(ctx.package(ROOT_PACKAGE)) == '1.1.0'

    def test_member_package_filters_by_path(self, tmp_path: Path, vcs: FakeVCS) -> None:
        """A member package only sees commits touching its directory."""
        ctx = _workspace(tmp_path)
        _history(vcs)
        manager = _session(ctx, vcs, 'core')

        asyncio.run(manager.set_range())
        result = asyncio.run(manager.persist())

        assert manager.commit_count() == 1
        assert result.snapshot is not None
        assert result.snapshot.decision.target_version == '0.3.0'
        text = (tmp_path / 'packages' / 'core' / 'CHANGELOG.md').read_text(encoding='utf-8')
        assert 'add cache' in text
        assert 'root bug' not in text
        assert not (tmp_path / 'CHANGELOG.md').exists()

    def test_member_package_keeps_its_pull_requests(self, tmp_path: Path, vcs: FakeVCS) -> None:
        """A PR touching the package is kept with its merge commit."""
        ctx = _workspace(tmp_path)
        base = vcs.commit('chore: init', files=('pyproject.toml',))
        vcs.tag('v1.0.0')
        b1 = vcs.commit('feat(core): add cache', parents=[base], files=('packages/core/cache.py',))
        b2 = vcs.commit('docs: explain cache', parents=[b1], files=('docs/cache.md',))
        vcs.merge('Merge pull request #7 from acme/cache\n\nfeat(core): cache layer', b2)
        manager = _session(ctx, vcs, 'core')

        asyncio.run(manager.set_range())
        snap = manager.snapshot()
        text = manager.generate_changelog()

        assert snap.commit_count == 2
        assert snap.pull_requests == 1
        assert '### 🚀 Features' in text
        assert '- **feat(core)**: cache layer' in text
        assert f'([#7]({_REPO}/pull/7))' in text
        assert '<summary>Show 2 commits</summary>' in text
        assert 'Direct Commits' not in text

    def test_no_commits(self, tmp_path: Path, vcs: FakeVCS) -> None:
        """An empty range writes nothing."""
        ctx = _workspace(tmp_path)
        vcs.commit('chore: init')
        vcs.tag('v1.0.0')
        manager = _session(ctx, vcs)

        asyncio.run(manager.set_range())
        result = asyncio.run(manager.persist())

        assert result.ok
        assert result.snapshot is not None
        assert result.snapshot.label is None
        assert result.snapshot.decision.reason == 'No commits in range'
        assert manager.generate_changelog() == ''
        assert not (tmp_path / 'CHANGELOG.md').exists()

    def test_full_history(self, tmp_path: Path, vcs: FakeVCS) -> None:
        """An empty start ref reads the whole history."""
        ctx = _workspace(tmp_path)
        _history(vcs)
        manager = _session(ctx, vcs)

        asyncio.run(manager.set_range(''))

        assert manager.commit_count() == 3
        assert vcs.log_calls[0] == 'HEAD'

    def test_dry_run(self, tmp_path: Path, vcs: FakeVCS) -> None:
        """A dry run decides but writes nothing."""
        ctx = _workspace(tmp_path)
        _history(vcs)
        manager = _session(ctx, vcs)

        asyncio.run(manager.set_range())
        result = asyncio.run(manager.persist(dry_run=True))

        assert result.snapshot is not None
        assert result.snapshot.decision.should_bump
        assert not result.changelog_written
        assert not result.manifest_bumped
        assert not (tmp_path / 'CHANGELOG.md').exists()
        assert read_version(ctx.package(ROOT_PACKAGE)) == '1.0.0'

    def test_changelog_only(self, tmp_path: Path, vcs: FakeVCS) -> None:
        """With manifest bumping off only the changelog changes."""
        ctx = _workspace(tmp_path)
        _history(vcs)
        manager = _session(ctx, vcs)

        asyncio.run(manager.set_range())
        result = asyncio.run(manager.persist(bump_manifest=False))

        assert result.changelog_written
        assert not result.manifest_bumped
        assert read_version(ctx.package(ROOT_PACKAGE)) == '1.0.0'

    def test_changelog_ahead_syncs(self, tmp_path: Path, vcs: FakeVCS) -> None:
        """A changelog ahead of the manifest pulls the version up to it."""
        ctx = _workspace(tmp_path)
        _write(tmp_path / 'CHANGELOG.md', '# Changelog\n\n## v1.5.0\n\n- planned\n')
        _history(vcs)
        manager = _session(ctx, vcs)

        asyncio.run(manager.set_range())
        result = asyncio.run(manager.persist())

        assert result.snapshot is not None
        assert result.snapshot.decision.bump_type == BumpType.SYNC
        assert result.manifest_bumped
        assert read_version(ctx.package(ROOT_PACKAGE)) == '1.5.0'
        doc = ChangelogDocument.parse((tmp_path / 'CHANGELOG.md').read_text(encoding='utf-8'))
        assert doc.versions() == ['1.5.0']
        assert 'add cache' in doc.blocks['1.5.0']

    def test_sync_keeps_documented_current_block(self, tmp_path: Path, vcs: FakeVCS) -> None:
        """Syncing past a documented current version leaves its block verbatim."""
        ctx = _workspace(tmp_path, root_version='1.2.3')
        old_block = '## v1.2.3\n\n- shipped long ago'
        _write(tmp_path / 'CHANGELOG.md', f'# Changelog\n\n## v1.5.0\n\n- planned\n\n{old_block}\n')
        _history(vcs)
        manager = _session(ctx, vcs)

        asyncio.run(manager.set_range())
        result = asyncio.run(manager.persist())

        assert result.snapshot is not None
        assert result.snapshot.decision.bump_type == BumpType.SYNC
        assert read_version(ctx.package(ROOT_PACKAGE)) == '1.5.0'
        doc = ChangelogDocument.parse((tmp_path / 'CHANGELOG.md').read_text(encoding='utf-8'))
        assert doc.blocks['1.2.3'] == old_block

    def test_documented_version_regenerated(self, tmp_path: Path, vcs: FakeVCS) -> None:
        """An untagged documented version is rewritten in place, not bumped past."""
        ctx = _workspace(tmp_path, root_version='1.0.0')
        vcs.commit('chore: init')
        vcs.tag('v0.9.0')
        vcs.commit('fix: handle empty input')
        _write(tmp_path / 'CHANGELOG.md', '# Changelog\n\n## v1.0.1\n\n- planned\n')
        manager = _session(ctx, vcs)

        asyncio.run(manager.set_range())
        result = asyncio.run(manager.persist())

        assert result.snapshot is not None
        assert result.snapshot.decision.should_bump is False
        assert result.snapshot.label == '1.0.1'
        assert result.changelog_written
        assert not result.manifest_bumped
        doc = ChangelogDocument.parse((tmp_path / 'CHANGELOG.md').read_text(encoding='utf-8'))
        assert doc.versions() == ['1.0.1']
        assert 'handle empty input' in doc.blocks['1.0.1']
        assert UNRELEASED not in doc.blocks

    def test_stage_order_enforced(self, tmp_path: Path, vcs: FakeVCS) -> None:
        """Later stages refuse to run before set_range()."""
        ctx = _workspace(tmp_path)
        manager = _session(ctx, vcs)
        with pytest.raises(ChangeKitError, match='before set_range') as exc_info:
            manager.generate_changelog()
        assert exc_info.value.code == E.SESSION_NOT_READY


class TestRunPackages:
    """Tests for run_packages()."""

    def test_all_packages(self, tmp_path: Path, vcs: FakeVCS) -> None:
        """Every discovered package gets a result, in order."""
        ctx = _workspace(tmp_path)
        _history(vcs)

        results = asyncio.run(run_packages(ctx, vcs))

        assert [r.package for r in results] == [ROOT_PACKAGE, 'core']
        assert all(r.ok for r in results)
        assert (tmp_path / 'CHANGELOG.md').exists()
        assert (tmp_path / 'packages' / 'core' / 'CHANGELOG.md').exists()

    def test_failure_is_isolated(self, tmp_path: Path, vcs: FakeVCS) -> None:
        """One package failing does not stop the others."""
        ctx = _workspace(tmp_path, core_version='not-a-version')
        _history(vcs)

        results = asyncio.run(run_packages(ctx, vcs, ['core', ROOT_PACKAGE, 'missing']))

        core, root, missing = results
        assert not core.ok
        assert core.error_code == E.VERSION_INVALID.value
        assert core.snapshot is None
        assert root.ok
        assert root.manifest_bumped
        assert not missing.ok
        assert missing.error_code == E.PACKAGE_NOT_FOUND.value

    def test_unreadable_changelog_is_isolated(self, tmp_path: Path, vcs: FakeVCS) -> None:
        """A corrupt changelog fails only its own package."""
        ctx = _workspace(tmp_path)
        (tmp_path / 'CHANGELOG.md').write_bytes(b'# Changelog\n\xff\xfe bad\n')
        _history(vcs)

        root, core = asyncio.run(run_packages(ctx, vcs, [ROOT_PACKAGE, 'core']))

        assert not root.ok
        assert root.error_code == E.CHANGELOG_READ_FAILED.value
        assert core.ok
        assert core.package == 'core'

    def test_history_failure(self, tmp_path: Path, vcs: FakeVCS) -> None:
        """A range that cannot be listed fails the package."""
        ctx = _workspace(tmp_path)
        _history(vcs)
        vcs.fail_log.add('v1.0.0..HEAD')

        (result,) = asyncio.run(run_packages(ctx, vcs, [ROOT_PACKAGE]))

        assert not result.ok
        assert result.error_code == E.VCS_COMMAND_FAILED.value
