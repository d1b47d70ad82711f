from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Sequence


def fetch_all(calls: Sequence[Callable[[], Any]], max_workers: int = 4) -> list[Any]:
    """Run independent read calls and return their results in call order.

    The first failing call re-raises in the caller, so a request either gets
    every result or none.
    """
    calls = list(calls)
    if max_workers <= 1 or len(calls) <= 1:
        return [call() for call in calls]

    with ThreadPoolExecutor(max_workers=min(max_workers, len(calls))) as pool:
        futures = [pool.submit(call) for call in calls]
        return [f.result() for f in futures]
