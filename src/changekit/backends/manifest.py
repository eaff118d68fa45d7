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


"""Package metadata: versions in manifests, changelog files on disk.

Two manifest formats are understood:

- ``pyproject.toml``: ``[project].version``, else ``[tool.poetry].version``.
  Written back with ``tomlkit`` so comments and formatting survive.
- ``package.json``: top-level ``version``. Written back with 2-space
  indentation and a trailing newline.

A package whose manifest has no version reads as ``0.0.0``.
"""

from __future__ import annotations

import json
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

import tomlkit

from changekit.errors import E, ChangeKitError
from changekit.logging import get_logger

logger = get_logger(__name__)

DEFAULT_VERSION = '0.0.0'

MANIFEST_NAMES: tuple[str, ...] = ('pyproject.toml', 'package.json')


@dataclass(frozen=True)
class Package:
    """One versioned package of the workspace.

    Attributes:
        name: Package name (``root`` for the workspace root).
        path: Absolute package directory.
        relpath: Directory relative to the repository root, in POSIX
            form (``.`` for the root). Used to filter history.
        manifest_path: ``pyproject.toml`` or ``package.json``, or
            ``None`` when the package has no manifest.
        changelog_path: Where the package's changelog lives.
    """

    name: str
    path: Path
    relpath: str
    manifest_path: Path | None
    changelog_path: Path


def find_manifest(directory: Path) -> Path | None:
    """Return the first manifest file found in *directory*."""
    for name in MANIFEST_NAMES:
        candidate = directory / name
        if candidate.is_file():
            return candidate
    return None


def _load_manifest(path: Path) -> dict[str, Any]:
    try:
        if path.name == 'package.json':
            data = json.loads(path.read_text(encoding='utf-8'))
        else:
            with path.open('rb') as f:
                data = tomllib.load(f)
    except (OSError, ValueError) as exc:
        raise ChangeKitError(
            code=E.VERSION_NOT_FOUND,
            message=f'Cannot read manifest {path}: {exc}',
            hint='Fix the manifest syntax before running changekit.',
        ) from exc
    if not isinstance(data, dict):
        raise ChangeKitError(code=E.VERSION_NOT_FOUND, message=f'Manifest {path} is not an object')
    return data


def _toml_version_table(data: dict[str, Any]) -> dict[str, Any] | None:
    project = data.get('project')
    if isinstance(project, dict) and 'version' in project:
        return project
    poetry = data.get('tool', {}).get('poetry')
    if isinstance(poetry, dict) and 'version' in poetry:
        return poetry
    return None


def read_manifest_name(path: Path) -> str | None:
    """Return the package name declared in a manifest, if any."""
    data = _load_manifest(path)
    if path.name == 'package.json':
        name = data.get('name')
    else:
        name = data.get('project', {}).get('name') or data.get('tool', {}).get('poetry', {}).get('name')
    return name if isinstance(name, str) and name else None


def read_version(pkg: Package) -> str:
    """Return the package's current version, ``0.0.0`` when absent."""
    if pkg.manifest_path is None:
        return DEFAULT_VERSION
    data = _load_manifest(pkg.manifest_path)
    if pkg.manifest_path.name == 'package.json':
        version = data.get('version')
    else:
        table = _toml_version_table(data)
        version = table.get('version') if table is not None else None
    if not isinstance(version, str) or not version:
        logger.debug('manifest_version_missing', package=pkg.name, manifest=str(pkg.manifest_path))
        return DEFAULT_VERSION
    return version


def write_version(pkg: Package, version: str) -> None:
    """Rewrite the version in the package's manifest.

    Raises:
        ChangeKitError: ``MANIFEST_WRITE_FAILED`` if the package has no
            manifest, declares a dynamic version, or the write fails.
    """
    path = pkg.manifest_path
    if path is None:
        raise ChangeKitError(
            code=E.MANIFEST_WRITE_FAILED,
            message=f'Package {pkg.name} has no manifest to bump',
            hint='Add a pyproject.toml or package.json, or persist without bumping the manifest.',
            package=pkg.name,
        )
    try:
        text = path.read_text(encoding='utf-8')
        if path.name == 'package.json':
            data = json.loads(text)
            data['version'] = version
            new_text = json.dumps(data, indent=2, ensure_ascii=False) + '\n'
        else:
            new_text = _bump_pyproject(pkg, text, version)
        path.write_text(new_text, encoding='utf-8')
    except (OSError, ValueError) as exc:
        raise ChangeKitError(
            code=E.MANIFEST_WRITE_FAILED,
            message=f'Cannot write version to {path}: {exc}',
            package=pkg.name,
        ) from exc
    logger.info('manifest_version_written', package=pkg.name, version=version, manifest=str(path))


def _bump_pyproject(pkg: Package, text: str, version: str) -> str:
    doc = tomlkit.parse(text)
    project = doc.get('project')
    if project is not None and 'version' in project:
        project['version'] = version
        return tomlkit.dumps(doc)
    poetry = doc.get('tool', {}).get('poetry')
    if poetry is not None and 'version' in poetry:
        poetry['version'] = version
        return tomlkit.dumps(doc)
    if project is not None and 'version' in project.get('dynamic', []):
        raise ChangeKitError(
            code=E.MANIFEST_WRITE_FAILED,
            message=f'{pkg.manifest_path} declares a dynamic version',
            hint='Let the build backend derive the version from the release tag instead.',
            package=pkg.name,
        )
    if project is None:
        doc.add('project', tomlkit.table())
        project = doc['project']
    project['version'] = version
    return tomlkit.dumps(doc)


def read_changelog(pkg: Package) -> str:
    """Return the package's changelog text, ``''`` if there is none.

    Raises:
        ChangeKitError: ``CHANGELOG_READ_FAILED`` when the file exists but
            cannot be read or is not UTF-8.
    """
    try:
        return pkg.changelog_path.read_text(encoding='utf-8')
    except FileNotFoundError:
        return ''
    except (OSError, UnicodeDecodeError) as exc:
        raise ChangeKitError(
            code=E.CHANGELOG_READ_FAILED,
            message=f'Cannot read {pkg.changelog_path}: {exc}',
            hint='Make sure the changelog is a readable UTF-8 file.',
            package=pkg.name,
        ) from exc


def write_changelog(pkg: Package, text: str) -> None:
    """Write the package's changelog.

    Raises:
        ChangeKitError: ``CHANGELOG_WRITE_FAILED`` on any filesystem error.
    """
    try:
        pkg.changelog_path.parent.mkdir(parents=True, exist_ok=True)
        pkg.changelog_path.write_text(text, encoding='utf-8')
    except OSError as exc:
        raise ChangeKitError(
            code=E.CHANGELOG_WRITE_FAILED,
            message=f'Cannot write {pkg.changelog_path}: {exc}',
            hint='Check permissions on the package directory.',
            package=pkg.name,
        ) from exc
    logger.info('changelog_written', package=pkg.name, path=str(pkg.changelog_path), size=len(text))


__all__ = [
    'DEFAULT_VERSION',
    'MANIFEST_NAMES',
    'Package',
    'find_manifest',
    'read_changelog',
    'read_manifest_name',
    'read_version',
    'write_changelog',
    'write_version',
]
