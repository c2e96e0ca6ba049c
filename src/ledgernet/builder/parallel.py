import asyncio
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, List, Sequence

from ..datacls import WorkResult
from ..exceptions import AggregateError

logger = logging.getLogger(__name__)


async def run_in_parallel(
    title: str,
    items: Sequence[Any],
    work: Callable[[int, Any], Any],
) -> List[WorkResult]:
    """
    Runs `work(index, item)` for every item, each on its own worker thread.

    Every invocation is awaited regardless of how its siblings end, so one
    failing unit never hides the others' outcomes. Units signal failure by
    raising.

    Returns:
        One WorkResult per item, in index order

    Raises:
        AggregateError: if at least one unit raised
    """
    total = len(items)
    logger.debug(f"[Parallel] {title}: {total} unit(s)")
    if total == 0:
        return []

    loop = asyncio.get_running_loop()
    with ThreadPoolExecutor(max_workers=total, thread_name_prefix=title.replace(" ", "-")) as executor:
        tasks = [
            loop.run_in_executor(executor, work, index, item)
            for index, item in enumerate(items)
        ]
        outcomes = await asyncio.gather(*tasks, return_exceptions=True)

    results = []
    for index, outcome in enumerate(outcomes):
        if isinstance(outcome, BaseException):
            logger.error(f"[Parallel] {title}: unit {index} failed: {outcome}")
            results.append(WorkResult(index=index, error=outcome))
        else:
            results.append(WorkResult(index=index))

    failures = [(r.index, r.error) for r in results if not r.ok]
    if failures:
        raise AggregateError(title, failures, total)
    logger.debug(f"[Parallel] {title}: {total}/{total} succeeded")
    return results
