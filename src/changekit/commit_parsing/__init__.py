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


r"""Commit message parsing.

Turns one raw commit message into structured semantic fields, and
combines those with VCS identity fields into a :class:`SemanticCommit`.

Usage::

    from changekit.commit_parsing import CommitType, parse_commit_message

    msg = parse_commit_message('fix(api): handle empty payload')
    assert msg.type == CommitType.FIX
    assert msg.scopes == ('api',)

    # Non-conventional messages degrade, they never fail:
    msg = parse_commit_message('Update README')
    assert msg.type == CommitType.OTHER
    assert msg.description == 'Update README'
"""

from changekit.commit_parsing._conventional import (
    BOT_SIGNATURES,
    CC_PATTERN,
    DEPENDENCY_SCOPES,
    MERGE_MARKERS,
    CommitMessageParser,
    has_bot_signature,
    is_merge_message,
)
from changekit.commit_parsing._types import (
    CATEGORY_TITLES,
    COMMIT_TYPES,
    PR_SCORED_CATEGORIES,
    SECTION_ORDER,
    Category,
    CommitMessage,
    CommitType,
    CommitTypeDefinition,
    PRStats,
    PullRequestInfo,
    SemanticCommit,
)

# Module-level singleton for convenience.
_DEFAULT_PARSER = CommitMessageParser()


def parse_commit_message(message: str) -> CommitMessage:
    """Parse a single commit message.

    Convenience wrapper around :meth:`CommitMessageParser.parse`.
    """
    return _DEFAULT_PARSER.parse(message)


__all__ = [
    'BOT_SIGNATURES',
    'CATEGORY_TITLES',
    'CC_PATTERN',
    'COMMIT_TYPES',
    'Category',
    'CommitMessage',
    'CommitMessageParser',
    'CommitType',
    'CommitTypeDefinition',
    'DEPENDENCY_SCOPES',
    'MERGE_MARKERS',
    'PRStats',
    'PR_SCORED_CATEGORIES',
    'PullRequestInfo',
    'SECTION_ORDER',
    'SemanticCommit',
    'has_bot_signature',
    'is_merge_message',
    'parse_commit_message',
]
