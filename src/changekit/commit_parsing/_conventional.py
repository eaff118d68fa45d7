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


r"""Conventional Commits parser that never rejects a message.

**Subject line**::

    type(scope, other-scope)!: description

Unlike a strict validator, this parser always returns a
:class:`~changekit.commit_parsing._types.CommitMessage`. Messages that
do not follow the grammar degrade instead of failing:

- Merge markers (``Merge pull request``, ``Merge branch``) give
  ``type = merge``.
- GitHub's default revert subject (``Revert "feat: add X"``) gives
  ``type = revert``.
- Anything else gives ``type = other``.

In every degraded case the subject line is kept verbatim as the
description and the rest of the message stays in ``body_lines``.

Derived flags:

- ``is_breaking``: ``!`` after type/scope, or a ``BREAKING CHANGE:`` /
  ``BREAKING-CHANGE:`` footer line (uppercase only) in a conventional
  message.
- ``is_merge``: the message starts with a merge marker, whatever the
  grammar says.
- ``is_dependency``: ``deps`` type, a dependency scope (``deps``,
  ``renovate``, ...), a ``chore`` whose description mentions
  update/upgrade/bump, or a bot signature anywhere in the message.

Pure implementation: depends only on ``re`` and :mod:`._types`.
"""

from __future__ import annotations

import re

from changekit.commit_parsing._types import CommitMessage, CommitType

# Types are case-insensitive and normalised to lowercase.
CC_PATTERN: re.Pattern[str] = re.compile(
    r'^(?P<type>[a-zA-Z]+)'  # type (e.g. feat, fix, chore)
    r'(?:\((?P<scope>[^)]*)\))?'  # optional scope list in parens
    r'(?P<breaking>!)?'  # optional breaking change indicator
    r':\s*'  # colon + space
    r'(?P<description>\S.*)$',  # description
)

# GitHub's default revert format: Revert "feat: add X"
REVERT_PATTERN: re.Pattern[str] = re.compile(r'^[Rr]evert\s+"(?P<inner>.+)"')

_BREAKING_FOOTER: re.Pattern[str] = re.compile(r'^BREAKING[ -]CHANGE:')

MERGE_MARKERS: tuple[str, ...] = ('Merge pull request', 'Merge branch')

DEPENDENCY_SCOPES: frozenset[str] = frozenset({'deps', 'dependencies', 'dep', 'renovate', 'dependabot'})

BOT_SIGNATURES: tuple[str, ...] = ('renovate[bot]', 'dependabot[bot]')

_CHORE_DEPENDENCY_WORDS: tuple[str, ...] = ('update', 'upgrade', 'bump')

_KNOWN_TYPES: dict[str, CommitType] = {t.value: t for t in CommitType}


def is_merge_message(message: str) -> bool:
    """Return whether *message* starts with a merge marker."""
    return message.startswith(MERGE_MARKERS)


def has_bot_signature(message: str) -> bool:
    """Return whether *message* mentions a dependency bot."""
    return any(sig in message for sig in BOT_SIGNATURES)


def _split_scopes(raw: str | None) -> tuple[str, ...]:
    if not raw:
        return ()
    return tuple(s.strip() for s in raw.split(',') if s.strip())


class CommitMessageParser:
    r"""Parse raw commit messages into :class:`CommitMessage` records.

    Example::

        parser = CommitMessageParser()

        msg = parser.parse('feat(auth, api)!: drop v1 tokens')
        assert msg.type == CommitType.FEAT
        assert msg.scopes == ('auth', 'api')
        assert msg.is_breaking is True

        msg = parser.parse('Merge pull request #12 from acme/login\n\nAdd login')
        assert msg.type == CommitType.MERGE
        assert msg.is_merge is True
        assert msg.body_lines == ('Add login',)
    """

    def parse(self, message: str) -> CommitMessage:
        """Parse a commit message.

        Args:
            message: Subject line, optionally followed by a body.

        Returns:
            The parsed message fields. Never raises for malformed input.
        """
        lines = message.split('\n')
        subject = lines[0].strip()
        body_lines = tuple(line.strip() for line in lines[1:] if line.strip())
        is_merge = is_merge_message(message.lstrip())
        bot = has_bot_signature(message)

        match = CC_PATTERN.match(subject)
        cc_type = _KNOWN_TYPES.get(match.group('type').lower()) if match else None
        if match is None or cc_type is None:
            if is_merge:
                fallback = CommitType.MERGE
            elif REVERT_PATTERN.match(subject):
                fallback = CommitType.REVERT
            else:
                fallback = CommitType.OTHER
            return CommitMessage(
                type=fallback,
                description=subject,
                body_lines=body_lines,
                is_merge=is_merge,
                is_dependency=bot,
            )

        scopes = _split_scopes(match.group('scope'))
        description = match.group('description').strip()
        is_breaking = bool(match.group('breaking')) or any(_BREAKING_FOOTER.match(line) for line in body_lines)

        lowered = description.lower()
        is_dependency = (
            cc_type == CommitType.DEPS
            or any(s.lower() in DEPENDENCY_SCOPES for s in scopes)
            or (cc_type == CommitType.CHORE and any(w in lowered for w in _CHORE_DEPENDENCY_WORDS))
            or bot
        )

        return CommitMessage(
            type=cc_type,
            description=description,
            scopes=scopes,
            body_lines=body_lines,
            is_breaking=is_breaking,
            is_merge=is_merge,
            is_dependency=is_dependency,
        )
