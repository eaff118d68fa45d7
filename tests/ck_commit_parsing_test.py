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


"""Tests for changekit.commit_parsing."""

from __future__ import annotations

import pytest
from changekit.commit_parsing import (
    COMMIT_TYPES,
    Category,
    CommitType,
    PullRequestInfo,
    SemanticCommit,
    parse_commit_message,
)


class TestConventionalSubjects:
    """Tests for messages that follow the conventional grammar."""

    def test_simple_feat(self) -> None:
        """Type and description are split on the colon."""
        msg = parse_commit_message('feat: add login')
        assert msg.type == CommitType.FEAT
        assert msg.description == 'add login'
        assert msg.scopes == ()
        assert msg.is_breaking is False
        assert msg.is_merge is False

    def test_scope_list(self) -> None:
        """Comma-separated scopes are split and stripped."""
        msg = parse_commit_message('fix(auth, api): handle expiry')
        assert msg.type == CommitType.FIX
        assert msg.scopes == ('auth', 'api')

    def test_type_is_case_insensitive(self) -> None:
        """Uppercase types normalise to lowercase."""
        msg = parse_commit_message('Fix(API): crash on empty body')
        assert msg.type == CommitType.FIX
        assert msg.scopes == ('API',)

    def test_bang_marks_breaking(self) -> None:
        """A ``!`` before the colon sets the breaking flag."""
        msg = parse_commit_message('refactor(core)!: drop python 3.9')
        assert msg.is_breaking is True
        assert msg.type == CommitType.REFACTOR

    def test_breaking_footer(self) -> None:
        """A BREAKING CHANGE footer in the body sets the breaking flag."""
        msg = parse_commit_message('feat: new api\n\nBREAKING CHANGE: removed v1 endpoints')
        assert msg.is_breaking is True
        assert msg.body_lines == ('BREAKING CHANGE: removed v1 endpoints',)

    def test_breaking_hyphen_footer(self) -> None:
        """BREAKING-CHANGE is accepted as a synonym."""
        msg = parse_commit_message('fix: x\n\nBREAKING-CHANGE: config moved')
        assert msg.is_breaking is True

    def test_lowercase_footer_is_not_breaking(self) -> None:
        """The footer token must be uppercase."""
        msg = parse_commit_message('fix: x\n\nbreaking change: nope')
        assert msg.is_breaking is False

    def test_body_lines_skip_blanks(self) -> None:
        """Only non-empty body lines are kept, stripped."""
        msg = parse_commit_message('docs: readme\n\n  first line  \n\n\nsecond line\n')
        assert msg.body_lines == ('first line', 'second line')


class TestDegradedMessages:
    """Tests for messages outside the grammar."""

    def test_plain_message_is_other(self) -> None:
        """A free-form subject becomes type other with the subject kept."""
        msg = parse_commit_message('Update README')
        assert msg.type == CommitType.OTHER
        assert msg.description == 'Update README'

    def test_unknown_type_is_other(self) -> None:
        """A type outside the vocabulary degrades to other."""
        msg = parse_commit_message('feature: something new')
        assert msg.type == CommitType.OTHER
        assert msg.description == 'feature: something new'
        assert msg.scopes == ()

    def test_github_merge(self) -> None:
        """GitHub merge messages are merges, with the PR title in the body."""
        msg = parse_commit_message('Merge pull request #12 from acme/login\n\nAdd login page')
        assert msg.type == CommitType.MERGE
        assert msg.is_merge is True
        assert msg.description == 'Merge pull request #12 from acme/login'
        assert msg.body_lines == ('Add login page',)

    def test_branch_merge(self) -> None:
        """Local branch merges are merges too."""
        msg = parse_commit_message("Merge branch 'main' into dev")
        assert msg.type == CommitType.MERGE
        assert msg.is_merge is True

    def test_github_revert(self) -> None:
        """GitHub's revert subject becomes type revert."""
        msg = parse_commit_message('Revert "feat: add login"')
        assert msg.type == CommitType.REVERT
        assert msg.description == 'Revert "feat: add login"'

    def test_empty_message(self) -> None:
        """An empty message still parses."""
        msg = parse_commit_message('')
        assert msg.type == CommitType.OTHER
        assert msg.description == ''

    def test_never_breaking_when_degraded(self) -> None:
        """Footers are only honoured on conventional messages."""
        msg = parse_commit_message('Rewrite everything\n\nBREAKING CHANGE: all of it')
        assert msg.is_breaking is False


class TestDependencyDetection:
    """Tests for the dependency flag."""

    @pytest.mark.parametrize(
        'message',
        [
            'deps: bump lodash to 4.17.21',
            'chore(renovate): pin actions',
            'fix(deps): update pydantic',
            'chore: update structlog',
            'chore: Upgrade node to 22',
            'chore: bump ruff',
        ],
    )
    def test_dependency_messages(self, message: str) -> None:
        """Dependency types, scopes and chore keywords set the flag."""
        assert parse_commit_message(message).is_dependency is True

    @pytest.mark.parametrize(
        'message',
        [
            'chore: tidy imports',
            'feat: update profile page',
            'docs: explain install',
        ],
    )
    def test_non_dependency_messages(self, message: str) -> None:
        """Ordinary commits do not set the flag."""
        assert parse_commit_message(message).is_dependency is False

    def test_bot_signature_on_free_form_message(self) -> None:
        """A bot signature flags even a non-conventional message."""
        msg = parse_commit_message('Update dependency lodash\n\nCo-authored-by: renovate[bot]')
        assert msg.type == CommitType.OTHER
        assert msg.is_dependency is True


class TestSemanticCommit:
    """Tests for the SemanticCommit record."""

    def test_from_message(self) -> None:
        """Identity fields are combined with the parsed message."""
        msg = parse_commit_message('feat(ui): dark mode')
        commit = SemanticCommit.from_message(msg, hash='a' * 40, author='bob', date='2026-01-01')
        assert commit.type == CommitType.FEAT
        assert commit.scopes == ('ui',)
        assert commit.author == 'bob'
        assert commit.short_hash == 'aaaaaaa'
        assert commit.message == msg

    def test_pr_only_on_merges(self) -> None:
        """Attaching PR info to a non-merge commit is rejected."""
        pr = PullRequestInfo(pr_number='1', category=Category.FEATURES)
        with pytest.raises(ValueError, match='not a merge commit'):
            SemanticCommit(hash='b' * 40, author='', date='', type=CommitType.FEAT, description='x', pr=pr)

    def test_pr_stats(self) -> None:
        """The commit count follows the PR's commits."""
        child = SemanticCommit(hash='c' * 40, author='', date='', type=CommitType.FIX, description='y')
        pr = PullRequestInfo(pr_number='7', category=Category.BUGFIXES, commits=(child, child))
        assert pr.stats.commit_count == 2


class TestCommitTypeRegistry:
    """Tests for COMMIT_TYPES."""

    def test_every_type_has_a_definition(self) -> None:
        """The registry covers the whole vocabulary."""
        assert set(COMMIT_TYPES) == set(CommitType)

    def test_breaking_allowed_flags(self) -> None:
        """Features may break, docs may not."""
        assert COMMIT_TYPES[CommitType.FEAT].breaking_allowed is True
        assert COMMIT_TYPES[CommitType.DOCS].breaking_allowed is False
