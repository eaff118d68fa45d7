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


"""Workspace discovery and the per-run context.

A :class:`WorkspaceContext` is built once per run by
:func:`load_workspace` and passed explicitly to every session. It holds
the resolved configuration and the package list, so nothing is cached
at module level and two runs in one process never see each other's
state.

Discovery::

    <root>/                    → package "root" (always present)
    <root>/packages/api/       → package named by its manifest
    <root>/apps/web/           → package named by its manifest

A directory matched by a ``members`` glob is a package only if it
contains a ``pyproject.toml`` or ``package.json``.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from changekit.backends.manifest import Package, find_manifest, read_manifest_name
from changekit.config import ChangeKitConfig, load_config, resolve_config
from changekit.errors import E, ChangeKitError
from changekit.logging import get_logger

logger = get_logger(__name__)

ROOT_PACKAGE = 'root'


@dataclass(frozen=True)
class WorkspaceContext:
    """Everything a session needs to know about the workspace.

    Attributes:
        root: Absolute workspace (repository) root.
        config: Resolved configuration.
        packages: Discovered packages, root first, members sorted by path.
    """

    root: Path
    config: ChangeKitConfig
    packages: tuple[Package, ...]

    def package(self, name: str) -> Package:
        """Return the package called *name*.

        Raises:
            ChangeKitError: ``PACKAGE_NOT_FOUND`` if no such package exists.
        """
        for pkg in self.packages:
            if pkg.name == name:
                return pkg
        raise ChangeKitError(
            code=E.PACKAGE_NOT_FOUND,
            message=f'Unknown package {name!r}',
            hint=f'Known packages: {", ".join(p.name for p in self.packages)}',
            package=name,
        )

    @property
    def package_names(self) -> list[str]:
        """Return package names in discovery order."""
        return [p.name for p in self.packages]


def _make_package(root: Path, directory: Path, name: str, config: ChangeKitConfig) -> Package:
    rel = directory.relative_to(root).as_posix() if directory != root else '.'
    return Package(
        name=name,
        path=directory,
        relpath=rel,
        manifest_path=find_manifest(directory),
        changelog_path=directory / config.changelog_file,
    )


def discover_packages(root: Path, config: ChangeKitConfig) -> tuple[Package, ...]:
    """Find the root package and every member package under *root*."""
    packages = [_make_package(root, root, ROOT_PACKAGE, config)]
    seen: set[str] = {ROOT_PACKAGE}
    member_dirs: set[Path] = set()
    for pattern in config.members:
        member_dirs.update(p for p in root.glob(pattern) if p.is_dir())

    for directory in sorted(member_dirs):
        manifest = find_manifest(directory)
        if manifest is None:
            logger.debug('member_without_manifest', path=str(directory))
            continue
        name = read_manifest_name(manifest) or directory.name
        if name in seen:
            logger.warning('duplicate_package_name', package=name, path=str(directory))
            continue
        seen.add(name)
        packages.append(_make_package(root, directory, name, config))

    return tuple(packages)


def load_workspace(
    root: Path,
    *,
    config: ChangeKitConfig | None = None,
    repository_url: str | None = None,
    tag_prefix: str | None = None,
) -> WorkspaceContext:
    """Build the run context for the workspace at *root*.

    Args:
        root: Workspace root.
        config: Pre-built configuration; loaded from *root* when ``None``.
        repository_url: Repository URL override (see :func:`resolve_config`).
        tag_prefix: Tag prefix override.

    Returns:
        The populated :class:`WorkspaceContext`.
    """
    root = root.resolve()
    base = config if config is not None else load_config(root)
    resolved = resolve_config(base, repository_url=repository_url, tag_prefix=tag_prefix)
    packages = discover_packages(root, resolved)
    logger.info('workspace_loaded', root=str(root), packages=[p.name for p in packages])
    return WorkspaceContext(root=root, config=resolved, packages=packages)


__all__ = [
    'ROOT_PACKAGE',
    'WorkspaceContext',
    'discover_packages',
    'load_workspace',
]
