"""Rich console helpers for the command line."""

from collections.abc import Iterator
from contextlib import contextmanager

from rich.console import Console
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TaskID,
    TextColumn,
    TimeElapsedColumn,
)


def create_console() -> Console:
    """Console for human readable output.

    Writes to stderr so stdout carries only transaction hashes or signed
    transactions and can be piped.
    """
    return Console(stderr=True)


def create_simple_progress(
    console: Console | None = None, *, expand: bool = False
) -> Progress:
    """Create a progress bar without time remaining estimation.

    Receipt waits have no meaningful time estimate, so only elapsed time is
    shown.

    Args:
        console: Rich console instance (optional)
        expand: Whether to expand the progress bar to full width

    Returns:
        Progress with a spinner, description, bar, M of N counter and
        elapsed time
    """
    return Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        MofNCompleteColumn(),
        TextColumn("•"),
        TimeElapsedColumn(),
        console=console,
        expand=expand,
    )


@contextmanager
def track_progress(
    description: str,
    total: int,
    console: Console | None = None,
) -> Iterator[tuple[Progress, TaskID]]:
    """Context manager for tracking progress with automatic cleanup.

    Example:
        ```python
        from beacondeposit.helpers.progress import track_progress

        with track_progress("Waiting for deposits", total=len(hashes)) as (progress, task):
            for tx_hash in hashes:
                ...
                progress.update(task, advance=1)
        ```
    """
    progress = create_simple_progress(console or create_console())
    with progress:
        task_id = progress.add_task(description, total=total)
        yield progress, task_id


__all__ = [
    "create_console",
    "create_simple_progress",
    "track_progress",
]
