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


"""Commit message linting.

Checks a message against the conventions the rest of changekit relies
on, so that commits parse into useful changelog entries. Unlike the
parser, which accepts anything, the linter reports every problem it
finds as a short human-readable string.

Usage::

    from changekit.lint import validate_commit_message

    errors = validate_commit_message('feature: Added stuff.')
    # ['invalid type "feature"; valid types: feat, fix, ...',
    #  'description should not end with a period']
"""

from __future__ import annotations

from collections.abc import Collection

from changekit.commit_parsing import CC_PATTERN, COMMIT_TYPES, CommitType, is_merge_message

DESCRIPTION_MIN_LENGTH = 3
DESCRIPTION_MAX_LENGTH = 100

# merge and other only describe messages the parser had to degrade.
_VALID_TYPES: dict[str, CommitType] = {
    t.value: t for t in COMMIT_TYPES if t not in (CommitType.MERGE, CommitType.OTHER)
}


def validate_commit_message(message: str, *, scopes: Collection[str] | None = None) -> list[str]:
    """Return every rule violation in *message*; empty when it is valid.

    Merge messages generated by git or a forge are always accepted.

    Args:
        message: The full commit message.
        scopes: Allowed scope names (typically the workspace package
            names). ``None`` or empty accepts any scope.

    Returns:
        A list of violation messages, in rule order.
    """
    if not message.strip():
        return ['commit message cannot be empty']
    if is_merge_message(message.lstrip()):
        return []

    subject = message.split('\n', 1)[0].strip()
    match = CC_PATTERN.match(subject)
    if match is None:
        return [f'subject must look like "type(scope): description", got {subject!r}']

    errors: list[str] = []
    raw_type = match.group('type')
    commit_type = _VALID_TYPES.get(raw_type)
    if commit_type is None:
        errors.append(f'invalid type "{raw_type}"; valid types: {", ".join(_VALID_TYPES)}')

    used_scopes = [s.strip() for s in (match.group('scope') or '').split(',') if s.strip()]
    if scopes:
        invalid = [s for s in used_scopes if s not in scopes]
        if invalid:
            errors.append(f'invalid scope(s) "{", ".join(invalid)}"; valid scopes: {", ".join(sorted(scopes))}')

    description = match.group('description').strip()
    if len(description) < DESCRIPTION_MIN_LENGTH:
        errors.append(f'description should be at least {DESCRIPTION_MIN_LENGTH} characters long')
    if len(description) > DESCRIPTION_MAX_LENGTH:
        errors.append(f'description should be at most {DESCRIPTION_MAX_LENGTH} characters long')
    if description.endswith('.'):
        errors.append('description should not end with a period')
    first_word = description.split(' ', 1)[0].lower().rstrip(':')
    if first_word in _VALID_TYPES:
        errors.append(f'description should not start with a type word ("{first_word}")')

    if match.group('breaking') and commit_type is not None and not COMMIT_TYPES[commit_type].breaking_allowed:
        errors.append(f'breaking changes are not allowed for type "{raw_type}"')

    return errors


__all__ = [
    'DESCRIPTION_MAX_LENGTH',
    'DESCRIPTION_MIN_LENGTH',
    'validate_commit_message',
]
