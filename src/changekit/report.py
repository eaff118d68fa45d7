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


"""Run reports: per-package outcomes as a table or JSON.

Usage::

    from changekit.manager import run_packages
    from changekit.report import print_results_table, results_to_json

    results = await run_packages(context, vcs)
    print_results_table(results)
    Path('changekit-report.json').write_text(results_to_json(results))
"""

from __future__ import annotations

import json
from io import StringIO
from typing import Any

from rich.console import Console
from rich.markup import escape
from rich.table import Table
from rich.text import Text

from changekit.manager import PackageResult
from changekit.versioning import BumpType

_BUMP_STYLE: dict[BumpType, str] = {
    BumpType.MAJOR: 'bold red',
    BumpType.MINOR: 'yellow',
    BumpType.PATCH: 'green',
    BumpType.SYNC: 'cyan',
    BumpType.NONE: 'dim',
}


def print_results_table(results: list[PackageResult], console: Console | None = None) -> None:
    """Print per-package outcomes with Rich formatting.

    Failed packages are followed by diagnostic blocks with the error
    code and hint.

    Args:
        results: Session results from :func:`~changekit.manager.run_packages`.
        console: Rich :class:`Console` to print to. When ``None``, a
            default ``Console()`` is created (auto-detects TTY).
    """
    if console is None:
        console = Console()

    # ── Summary table ──
    table = Table(
        show_header=True,
        header_style='bold',
        show_edge=False,
        pad_edge=False,
        expand=True,
    )
    table.add_column('Package', min_width=14, style='bold')
    table.add_column('Current', min_width=8)
    table.add_column('Target', min_width=8)
    table.add_column('Bump', min_width=6)
    table.add_column('Commits', width=7, justify='right')
    table.add_column('Status', min_width=10)
    table.add_column('Reason', ratio=2, style='dim')

    for r in results:
        snap = r.snapshot
        if snap is None:
            table.add_row(r.package, '-', '-', '-', '-', Text('❌ failed', style='red'), Text(r.error))
            continue
        decision = snap.decision
        if r.changelog_written or r.manifest_bumped:
            status = Text('✅ written', style='green')
        else:
            status = Text('unchanged', style='dim')
        table.add_row(
            r.package,
            decision.current_version,
            decision.target_version,
            Text(decision.bump_type.value, style=_BUMP_STYLE[decision.bump_type]),
            str(snap.commit_count),
            status,
            decision.reason,
        )

    console.print(table)

    # ── Diagnostics for failures ──
    failed = [r for r in results if not r.ok]
    if not failed:
        console.print(f'\n[bold green]{len(results)}/{len(results)} packages succeeded.[/]')
        return

    console.print(f'\n{len(results) - len(failed)}/{len(results)} packages succeeded.\n')
    for r in failed:
        console.print(f'[bold red]error\\[{r.error_code}][/][bold]: {escape(r.error)}[/]')
        console.print(f'  [cyan]-->[/] package {escape(r.package)}')
        if r.hint:
            console.print(f'   [cyan]=[/] [green]help[/]: {escape(r.hint)}')
        console.print()


def format_results_table(results: list[PackageResult], *, color: bool = False) -> str:
    """Format per-package outcomes as a string.

    Thin wrapper around :func:`print_results_table` that captures the
    Rich output. Useful for tests and non-interactive callers.
    """
    buf = StringIO()
    console = Console(file=buf, force_terminal=color, width=120)
    print_results_table(results, console=console)
    return buf.getvalue().rstrip('\n')


def results_to_json(results: list[PackageResult], *, indent: int = 2) -> str:
    """Serialize per-package outcomes to JSON.

    Args:
        results: Session results.
        indent: JSON indentation level.

    Returns:
        JSON string: a list with one object per package.
    """
    records: list[dict[str, Any]] = []
    for r in results:
        record: dict[str, Any] = {
            'package': r.package,
            'ok': r.ok,
            'changelog_written': r.changelog_written,
            'manifest_bumped': r.manifest_bumped,
            'error': r.error,
            'error_code': r.error_code,
        }
        if r.snapshot is not None:
            d = r.snapshot.decision
            record.update({
                'from_ref': r.snapshot.from_ref,
                'to_ref': r.snapshot.to_ref,
                'current_version': d.current_version,
                'target_version': d.target_version,
                'bump_type': d.bump_type.value,
                'should_bump': d.should_bump,
                'reason': d.reason,
                'label': r.snapshot.label,
                'commit_count': r.snapshot.commit_count,
                'pull_requests': r.snapshot.pull_requests,
                'categories': r.snapshot.categories,
            })
        records.append(record)
    return json.dumps(records, indent=indent)


__all__ = [
    'format_results_table',
    'print_results_table',
    'results_to_json',
]
