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


"""Markdown rendering of categorized commits.

Output of the ``default`` template for one version::

    ## v1.3.0

    ### 🚀 Features

    - **feat(auth)**: Add login ![features](...badge...) ([#12](.../pull/12)) - alice (2 commits) [a1b2c3d](...)
      <details>
      <summary>Show 2 commits</summary>

      - 🚀 feat(auth): add login form [e4f5a6b](...)
      - 🧪 test: cover login [c7d8e9f](...)
      </details>

    ### 📝 Direct Commits

    #### 🐛 Bug Fixes

    - **fix(api)**: handle empty payload - bob [0a1b2c3](...)

The ``compact`` template flattens PRs into their commits and prints one
plain bullet per commit under the same category headings.

Both templates are deterministic: the same input always produces the
same bytes, because the output is diffed and merged across runs.
Sections with no entries are omitted.
"""

from __future__ import annotations

from collections.abc import Callable

from changekit.categorize import CategorizedCommits
from changekit.changelog import DEFAULT_PREAMBLE, UNRELEASED
from changekit.commit_parsing import (
    CATEGORY_TITLES,
    COMMIT_TYPES,
    SECTION_ORDER,
    CommitType,
    SemanticCommit,
    parse_commit_message,
)

ORPHAN_GROUP_TITLE = '📝 Direct Commits'

BREAKING_MARKER = '💥'


def version_header(label: str, tag_prefix: str = 'v') -> str:
    """Return the ``##`` header line for a version label."""
    if label == UNRELEASED:
        return f'## [{UNRELEASED}]'
    return f'## {tag_prefix}{label}'


def _type_label(type_: CommitType, scopes: tuple[str, ...]) -> str:
    if scopes:
        return f'{type_.value}({", ".join(scopes)})'
    return type_.value


def _commit_ref(commit: SemanticCommit, repository_url: str) -> str:
    if repository_url:
        return f'[{commit.short_hash}]({repository_url}/commit/{commit.hash})'
    return commit.short_hash


def _pr_ref(number: str, repository_url: str) -> str:
    if repository_url:
        return f'[#{number}]({repository_url}/pull/{number})'
    return f'#{number}'


def _author(commit: SemanticCommit) -> str:
    return commit.author or 'Unknown'


def _pr_entry(merge: SemanticCommit, repository_url: str) -> list[str]:
    pr = merge.pr
    if pr is None:
        return [_orphan_entry(merge, repository_url)]
    title = parse_commit_message(pr.title) if pr.title else None
    if title is not None and title.type not in (CommitType.OTHER, CommitType.MERGE):
        type_, scopes, description = title.type, title.scopes, title.description
    else:
        type_, scopes, description = merge.type, merge.scopes, pr.title or merge.description

    count = pr.stats.commit_count
    noun = 'commit' if count == 1 else 'commits'
    parts = [f'- **{_type_label(type_, scopes)}**: {description}']
    if merge.is_breaking or any(c.is_breaking for c in pr.commits):
        parts.append(BREAKING_MARKER)
    color = COMMIT_TYPES[type_].badge_color
    parts.append(f'![{pr.category.value}](https://img.shields.io/badge/PR-{pr.category.value}-{color})')
    if pr.pr_number:
        parts.append(f'({_pr_ref(pr.pr_number, repository_url)})')
    parts.append(f'- {_author(merge)} ({count} {noun}) {_commit_ref(merge, repository_url)}')
    lines = [' '.join(parts)]

    if count > 1:
        lines.append('  <details>')
        lines.append(f'  <summary>Show {count} commits</summary>')
        lines.append('')
        for commit in pr.commits:
            emoji = COMMIT_TYPES[commit.type].emoji
            lines.append(
                f'  - {emoji} {_type_label(commit.type, commit.scopes)}: {commit.description} '
                f'{_commit_ref(commit, repository_url)}'
            )
        lines.append('  </details>')
    return lines


def _orphan_entry(commit: SemanticCommit, repository_url: str) -> str:
    line = f'- **{_type_label(commit.type, commit.scopes)}**: {commit.description}'
    if commit.is_breaking:
        line += f' {BREAKING_MARKER}'
    return f'{line} - {_author(commit)} {_commit_ref(commit, repository_url)}'


def _render_default(categorized: CategorizedCommits, repository_url: str) -> list[str]:
    sections: list[str] = []
    for category in SECTION_ORDER:
        merges = categorized.pull_requests(category)
        if not merges:
            continue
        body = [line for merge in merges for line in _pr_entry(merge, repository_url)]
        sections.append('\n'.join([f'### {CATEGORY_TITLES[category]}', '', *body]))

    orphan_sections: list[str] = []
    for category in SECTION_ORDER:
        orphans = categorized.orphans(category)
        if not orphans:
            continue
        body = [_orphan_entry(c, repository_url) for c in orphans]
        orphan_sections.append('\n'.join([f'#### {CATEGORY_TITLES[category]}', '', *body]))
    if orphan_sections:
        sections.append(f'### {ORPHAN_GROUP_TITLE}')
        sections.extend(orphan_sections)
    return sections


def _compact_line(commit: SemanticCommit, repository_url: str) -> str:
    line = f'- {_type_label(commit.type, commit.scopes)}: {commit.description}'
    if commit.is_breaking:
        line += f' {BREAKING_MARKER}'
    return f'{line} ({_commit_ref(commit, repository_url)}) by {_author(commit)}'


def _render_compact(categorized: CategorizedCommits, repository_url: str) -> list[str]:
    seen: set[str] = set()
    sections: list[str] = []
    for category in SECTION_ORDER:
        commits: list[SemanticCommit] = []
        for merge in categorized.pull_requests(category):
            commits.extend(merge.pr.commits if merge.pr is not None and merge.pr.commits else (merge,))
        commits.extend(categorized.orphans(category))
        lines = []
        for commit in commits:
            if commit.hash in seen:
                continue
            seen.add(commit.hash)
            lines.append(_compact_line(commit, repository_url))
        if lines:
            sections.append('\n'.join([f'### {CATEGORY_TITLES[category]}', '', *lines]))
    return sections


_TEMPLATES: dict[str, Callable[[CategorizedCommits, str], list[str]]] = {
    'default': _render_default,
    'compact': _render_compact,
}


def render_changelog(
    categorized: CategorizedCommits,
    label: str,
    *,
    template: str = 'default',
    repository_url: str = '',
    tag_prefix: str = 'v',
    preamble: str = DEFAULT_PREAMBLE,
) -> str:
    """Render one version's changelog fragment.

    Args:
        categorized: Output of :func:`~changekit.categorize.partition_commits`.
        label: Target version, or ``Unreleased``.
        template: ``default`` or ``compact``.
        repository_url: Base URL for PR and commit links; empty renders
            plain references.
        tag_prefix: Prefix shown before version numbers in the header.
        preamble: Document preamble; empty omits it.

    Returns:
        Markdown text ending in a single newline.

    Raises:
        KeyError: If *template* is not a known template name.
    """
    render = _TEMPLATES[template]
    parts: list[str] = []
    if preamble:
        parts.append(preamble.rstrip())
    parts.append(version_header(label, tag_prefix))
    parts.extend(render(categorized, repository_url.rstrip('/')))
    return '\n\n'.join(parts) + '\n'


__all__ = [
    'BREAKING_MARKER',
    'ORPHAN_GROUP_TITLE',
    'render_changelog',
    'version_header',
]
