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


"""Error codes and the exception type shared by every changekit module.

Recoverable conditions (an unparseable commit message, a merge commit
without a PR reference, a failed sub-range query) never raise: they
degrade in place and emit a structlog warning. Only version arithmetic,
configuration, and I/O failures surface as :class:`ChangeKitError`.

Each error carries a stable code from :class:`E` so callers (and CI log
scrapers) can branch on the failure kind without parsing messages, plus
an optional ``hint`` telling the operator how to fix it.

Usage::

    from changekit.errors import E, ChangeKitError

    raise ChangeKitError(
        code=E.VERSION_INVALID,
        message="Version 'abc' is not valid (expected X.Y.Z)",
        hint='Use a version string like "1.2.3" (MAJOR.MINOR.PATCH).',
    )
"""

from __future__ import annotations

import enum


class E(str, enum.Enum):
    """Stable error codes."""

    CONFIG_INVALID = 'CK-CONFIG-INVALID'
    CONFIG_NOT_FOUND = 'CK-CONFIG-NOT-FOUND'
    VERSION_INVALID = 'CK-VERSION-INVALID'
    VERSION_NOT_FOUND = 'CK-VERSION-NOT-FOUND'
    VCS_COMMAND_FAILED = 'CK-VCS-COMMAND-FAILED'
    CHANGELOG_READ_FAILED = 'CK-CHANGELOG-READ-FAILED'
    CHANGELOG_WRITE_FAILED = 'CK-CHANGELOG-WRITE-FAILED'
    MANIFEST_WRITE_FAILED = 'CK-MANIFEST-WRITE-FAILED'
    PACKAGE_NOT_FOUND = 'CK-PACKAGE-NOT-FOUND'
    SESSION_NOT_READY = 'CK-SESSION-NOT-READY'


class ChangeKitError(Exception):
    """A failure that aborts the current package session.

    Attributes:
        code: Stable error code.
        message: Human-readable description (also ``str(err)``).
        hint: Suggested remedy, or ``''``.
        package: Name of the package whose session failed, or ``''``
            when the failure is not package-specific.
    """

    def __init__(self, code: E, message: str, *, hint: str = '', package: str = '') -> None:
        """Initialize the error."""
        super().__init__(message)
        self.code = code
        self.message = message
        self.hint = hint
        self.package = package

    def __str__(self) -> str:
        """Return the message."""
        return self.message

    def with_package(self, package: str) -> ChangeKitError:
        """Return a copy of this error attributed to *package*."""
        err = ChangeKitError(self.code, self.message, hint=self.hint, package=package)
        err.__cause__ = self.__cause__
        return err


__all__ = [
    'ChangeKitError',
    'E',
]
