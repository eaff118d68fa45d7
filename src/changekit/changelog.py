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


"""Changelog documents: parse, merge, serialize.

A changelog is a preamble (title, badges, format notes) followed by one
block per version::

    # Changelog                      ┐
    ...badges and boilerplate...     ┘ preamble

    ## [Unreleased]                  ┐ block "Unreleased"
    ...                              ┘

    ## v1.3.0                        ┐ block "1.3.0"
    ...                              ┘

:class:`ChangelogDocument` is the in-memory mapping from version label
to block. It is the single place version headers are recognised: the
version determiner's "already documented" and "changelog is ahead"
checks both read :meth:`ChangelogDocument.versions`, so the two can
never disagree.

Recognised headers (the prefix before the digits is free-form, so any
tag prefix round-trips)::

    ## [Unreleased]      ## Unreleased
    ## v1.2.3            ## 1.2.3
    ## [1.2.3] - 2026-01-31
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from changekit.logging import get_logger

logger = get_logger(__name__)

UNRELEASED = 'Unreleased'

DEFAULT_PREAMBLE = (
    '# Changelog\n'
    '\n'
    '[![Keep a Changelog](https://img.shields.io/badge/changelog-Keep%20a%20Changelog%20v1.0.0-%23E05735)]'
    '(https://keepachangelog.com)\n'
    '[![Semantic Versioning](https://img.shields.io/badge/semver-semantic%20versioning%20v2.0.0-%23E05735)]'
    '(https://semver.org)\n'
    '\n'
    'All notable changes to this project will be documented in this file.\n'
    'The format is based on [Keep a Changelog](https://keepachangelog.com/en/1.0.0/),\n'
    'and this project adheres to [Semantic Versioning](https://semver.org/spec/v2.0.0.html).'
)

HEADER_PATTERN: re.Pattern[str] = re.compile(
    r'^##\s+\[?'
    r'(?:'
    r'(?P<unreleased>[Uu]nreleased)'
    r'|'
    r'[^\s\[\]\d]*(?P<version>\d+\.\d+\.\d+(?:-[0-9A-Za-z.-]+)?)'
    r')'
    r'\]?(?:\s.*)?$'
)

_VERSION_PARTS: re.Pattern[str] = re.compile(r'^(\d+)\.(\d+)\.(\d+)(?:-(.+))?$')


def parse_header(line: str) -> str | None:
    """Return the version label of a header line, or ``None``.

    >>> parse_header('## [Unreleased]')
    'Unreleased'
    >>> parse_header('## v1.2.3')
    '1.2.3'
    >>> parse_header('### Features') is None
    True
    """
    m = HEADER_PATTERN.match(line.rstrip())
    if m is None:
        return None
    if m.group('unreleased'):
        return UNRELEASED
    return m.group('version')


def version_key(version: str) -> tuple[int, int, int, int, str]:
    """Sort key for ``X.Y.Z[-pre]`` labels; a prerelease sorts below its release."""
    m = _VERSION_PARTS.match(version)
    if m is None:
        return (-1, -1, -1, 0, version)
    major, minor, patch, pre = m.groups()
    return (int(major), int(minor), int(patch), 0 if pre else 1, pre or '')


def order_labels(labels: list[str]) -> list[str]:
    """Order labels ``Unreleased`` first, then by descending version."""
    versions = sorted((v for v in labels if v != UNRELEASED), key=version_key, reverse=True)
    return ([UNRELEASED] if UNRELEASED in labels else []) + versions


@dataclass
class ChangelogDocument:
    """A changelog as a preamble plus version blocks.

    Attributes:
        preamble: Text before the first version header.
        blocks: Version label → block text (header line included, no
            trailing blank lines).
    """

    preamble: str = ''
    blocks: dict[str, str] = field(default_factory=dict)

    @classmethod
    def parse(cls, text: str) -> ChangelogDocument:
        """Split changelog text into preamble and version blocks.

        A version that appears twice has the later block appended to the
        first, so no hand-written text is lost on re-serialization.
        """
        preamble: list[str] = []
        blocks: dict[str, str] = {}
        label: str | None = None
        current: list[str] = []

        def _flush() -> None:
            if label is None:
                return
            block = '\n'.join(current).rstrip()
            if label in blocks:
                logger.warning('duplicate_changelog_version', version=label)
                blocks[label] = f'{blocks[label]}\n\n{block}'
                return
            blocks[label] = block

        for line in text.splitlines():
            header = parse_header(line)
            if header is not None:
                _flush()
                label = header
                current = [line.rstrip()]
            elif label is None:
                preamble.append(line)
            else:
                current.append(line)
        _flush()

        return cls(preamble='\n'.join(preamble).strip(), blocks=blocks)

    def versions(self) -> list[str]:
        """Return version labels, ``Unreleased`` first then descending."""
        return order_labels(list(self.blocks))

    def has_version(self, version: str) -> bool:
        """Return whether *version* has a block."""
        return version in self.blocks

    def latest_version(self) -> str | None:
        """Return the highest released version documented, or ``None``."""
        released = [v for v in self.versions() if v != UNRELEASED]
        return released[0] if released else None

    def merge(self, fragment: ChangelogDocument) -> ChangelogDocument:
        """Return a new document with *fragment*'s blocks layered on top.

        A version present in both is replaced by the fragment's block;
        every other block is kept verbatim. The fragment's preamble wins
        when it has one.
        """
        blocks = dict(self.blocks)
        blocks.update(fragment.blocks)
        preamble = fragment.preamble or self.preamble or DEFAULT_PREAMBLE
        return ChangelogDocument(preamble=preamble, blocks=blocks)

    def serialize(self) -> str:
        """Render the document back to text, blocks in canonical order."""
        parts = [self.preamble.rstrip()] if self.preamble.strip() else []
        parts.extend(self.blocks[label] for label in self.versions())
        if not parts:
            return ''
        return '\n\n'.join(parts) + '\n'


def merge_changelogs(existing: str, fragment: str) -> str:
    """Merge a freshly rendered fragment into existing changelog text.

    Args:
        existing: Current on-disk changelog (``''`` if none).
        fragment: Rendered fragment (preamble plus one or more blocks).

    Returns:
        The merged changelog text.
    """
    merged = ChangelogDocument.parse(existing).merge(ChangelogDocument.parse(fragment))
    logger.debug('changelog_merged', versions=merged.versions())
    return merged.serialize()


__all__ = [
    'DEFAULT_PREAMBLE',
    'HEADER_PATTERN',
    'UNRELEASED',
    'ChangelogDocument',
    'merge_changelogs',
    'order_labels',
    'parse_header',
    'version_key',
]
