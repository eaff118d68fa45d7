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


"""Configuration loading for changekit.

Configuration lives in ``changekit.toml`` at the workspace root, or in
the ``[tool.changekit]`` table of the root ``pyproject.toml``. The first
source found wins; with neither present every key takes its default.

Example ``changekit.toml``::

    repository_url = "https://github.com/acme/widgets"
    tag_prefix = "v"
    changelog_file = "CHANGELOG.md"
    template = "default"
    members = ["packages/*", "apps/*"]
    max_pr_depth = 3
    max_pr_commits = 250
    concurrency = 8
    default_branch = "main"

Every key is validated up front so a typo fails the run before any git
query is made, rather than silently falling back to a default.
"""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

from changekit.errors import E, ChangeKitError
from changekit.logging import get_logger

logger = get_logger(__name__)

CONFIG_FILENAME = 'changekit.toml'

TEMPLATES: frozenset[str] = frozenset({'default', 'compact'})

_DEFAULT_MEMBERS: tuple[str, ...] = ('packages/*', 'apps/*')


@dataclass(frozen=True)
class ChangeKitConfig:
    """Resolved configuration for one run.

    Attributes:
        repository_url: Base URL of the hosted repository, used to build
            PR and commit links. Empty disables links.
        tag_prefix: Prefix of release tags (``v`` for ``v1.2.3``).
        changelog_file: Changelog path relative to each package.
        template: Renderer template, ``default`` or ``compact``.
        members: Glob patterns (relative to the root) of member packages.
        max_pr_depth: How many levels of nested merges inside a PR are
            expanded.
        max_pr_commits: Upper bound on commits read from a single PR range.
        concurrency: Maximum number of concurrent git queries.
        default_branch: Branch name reported for PRs whose merge message
            does not name one.
    """

    repository_url: str = ''
    tag_prefix: str = 'v'
    changelog_file: str = 'CHANGELOG.md'
    template: str = 'default'
    members: list[str] = field(default_factory=lambda: list(_DEFAULT_MEMBERS))
    max_pr_depth: int = 3
    max_pr_commits: int = 250
    concurrency: int = 8
    default_branch: str = 'main'


_STRING_KEYS: frozenset[str] = frozenset({
    'repository_url',
    'tag_prefix',
    'changelog_file',
    'template',
    'default_branch',
})

_POSITIVE_INT_KEYS: frozenset[str] = frozenset({
    'max_pr_depth',
    'max_pr_commits',
    'concurrency',
})

_VALID_KEYS: frozenset[str] = _STRING_KEYS | _POSITIVE_INT_KEYS | {'members'}


def _invalid(message: str, hint: str) -> ChangeKitError:
    return ChangeKitError(code=E.CONFIG_INVALID, message=message, hint=hint)


def _parse_config(raw: dict[str, Any]) -> ChangeKitConfig:
    """Validate a raw TOML table and build a :class:`ChangeKitConfig`.

    Args:
        raw: The parsed table (top level of ``changekit.toml`` or
            ``[tool.changekit]``).

    Returns:
        A validated configuration.

    Raises:
        ChangeKitError: If a key is unknown or a value has the wrong
            type or range.
    """
    unknown = sorted(set(raw) - _VALID_KEYS)
    if unknown:
        raise _invalid(
            f'Unknown key(s) in changekit config: {", ".join(unknown)}',
            f'Valid keys: {", ".join(sorted(_VALID_KEYS))}',
        )

    values: dict[str, Any] = {}
    for key in sorted(_STRING_KEYS & set(raw)):
        value = raw[key]
        if not isinstance(value, str):
            raise _invalid(f'{key} must be a string, got {type(value).__name__}', f'Quote the value: {key} = "..."')
        values[key] = value

    for key in sorted(_POSITIVE_INT_KEYS & set(raw)):
        value = raw[key]
        if isinstance(value, bool) or not isinstance(value, int) or value < 1:
            raise _invalid(f'{key} must be a positive integer, got {value!r}', f'Example: {key} = 4')
        values[key] = value

    if 'members' in raw:
        members = raw['members']
        if not isinstance(members, list):
            raise _invalid(
                f'members must be a list of glob patterns, got {type(members).__name__}',
                'Example: members = ["packages/*"]',
            )
        for i, pattern in enumerate(members):
            if not isinstance(pattern, str):
                raise _invalid(f'members[{i}] must be a string, got {type(pattern).__name__}', 'Use glob strings.')
        values['members'] = list(members)

    template = values.get('template', 'default')
    if template not in TEMPLATES:
        raise _invalid(
            f'template must be one of {", ".join(sorted(TEMPLATES))}, got {template!r}',
            'Use "default" for the full layout or "compact" for one line per commit.',
        )

    if 'repository_url' in values:
        values['repository_url'] = values['repository_url'].rstrip('/')

    return ChangeKitConfig(**values)


def _read_toml(path: Path) -> dict[str, Any]:
    try:
        with path.open('rb') as f:
            return tomllib.load(f)
    except tomllib.TOMLDecodeError as exc:
        raise ChangeKitError(
            code=E.CONFIG_INVALID,
            message=f'{path} is not valid TOML: {exc}',
            hint='Fix the syntax error reported above.',
        ) from exc


def load_config_file(path: Path) -> ChangeKitConfig:
    """Load configuration from an explicit ``changekit.toml`` path.

    Raises:
        ChangeKitError: ``CONFIG_NOT_FOUND`` if the file does not exist,
            ``CONFIG_INVALID`` if it cannot be parsed or validated.
    """
    if not path.is_file():
        raise ChangeKitError(
            code=E.CONFIG_NOT_FOUND,
            message=f'Config file {path} does not exist',
            hint=f'Create {CONFIG_FILENAME} or omit the explicit path to use defaults.',
        )
    return _parse_config(_read_toml(path))


def load_config(root: Path) -> ChangeKitConfig:
    """Load the workspace configuration rooted at *root*.

    Looks for ``changekit.toml`` first, then ``[tool.changekit]`` in
    ``pyproject.toml``. Returns defaults when neither exists.

    Args:
        root: Workspace root directory.

    Returns:
        The validated configuration.
    """
    config_path = root / CONFIG_FILENAME
    if config_path.is_file():
        logger.debug('config_loaded', source=str(config_path))
        return load_config_file(config_path)

    pyproject = root / 'pyproject.toml'
    if pyproject.is_file():
        table = _read_toml(pyproject).get('tool', {}).get('changekit')
        if table is not None:
            if not isinstance(table, dict):
                raise _invalid('[tool.changekit] must be a table', 'Use a [tool.changekit] section header.')
            logger.debug('config_loaded', source=f'{pyproject}[tool.changekit]')
            return _parse_config(table)

    logger.debug('config_defaults', root=str(root))
    return ChangeKitConfig()


def resolve_config(
    base: ChangeKitConfig,
    *,
    repository_url: str | None = None,
    tag_prefix: str | None = None,
) -> ChangeKitConfig:
    """Merge explicit overrides and env vars into the final config.

    Priority order (highest wins):
    1. Explicit ``repository_url`` / ``tag_prefix`` arguments
    2. ``CHANGEKIT_REPOSITORY_URL`` / ``CHANGEKIT_TAG_PREFIX`` env vars
    3. ``GITHUB_SERVER_URL`` + ``GITHUB_REPOSITORY`` (GitHub Actions),
       only when no repository URL is configured
    4. The file configuration (the ``base`` param)

    Args:
        base: Configuration from :func:`load_config`.
        repository_url: Repository URL override.
        tag_prefix: Tag prefix override.

    Returns:
        Resolved :class:`ChangeKitConfig`.
    """
    url = base.repository_url
    prefix = base.tag_prefix

    # Layer 3: CI-provided repository coordinates.
    if not url:
        server = os.environ.get('GITHUB_SERVER_URL', '').strip()
        repo = os.environ.get('GITHUB_REPOSITORY', '').strip()
        if server and repo:
            url = f'{server.rstrip("/")}/{repo}'

    # Layer 2: env vars.
    env_url = os.environ.get('CHANGEKIT_REPOSITORY_URL', '').strip()
    if env_url:
        url = env_url
    env_prefix = os.environ.get('CHANGEKIT_TAG_PREFIX')
    if env_prefix is not None:
        prefix = env_prefix.strip()

    # Layer 1: explicit arguments.
    if repository_url is not None:
        url = repository_url
    if tag_prefix is not None:
        prefix = tag_prefix

    return replace(base, repository_url=url.rstrip('/'), tag_prefix=prefix)


__all__ = [
    'CONFIG_FILENAME',
    'TEMPLATES',
    'ChangeKitConfig',
    'load_config',
    'load_config_file',
    'resolve_config',
]
