import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Any, Callable, Dict, Generator, Iterable, Optional, TypeVar

T = TypeVar("T")
R = TypeVar("R")

logger = logging.getLogger("snowdrift")


def execute_in_threads(
    func: Callable[..., R],
    items: Iterable[T],
    max_workers: int = 8,
    item_to_args: Callable[[T], Any] = lambda x: [x],
    item_to_kwargs: Callable[[T], Dict[str, Any]] = lambda x: {},
    error_handler: Optional[Callable[[Exception, T], None]] = None,
) -> Generator[tuple[T, R], None, None]:
    """
    Run `func` for every item on a thread pool and yield results as they complete.

    Args:
        func: The function to execute for each item
        items: An iterable of items to process
        max_workers: Maximum number of worker threads (default: 8)
        item_to_args: Turns an item into positional arguments for func
                     (default: the item itself as the only argument)
        item_to_kwargs: Turns an item into keyword arguments for func
                      (default: no keyword arguments)
        error_handler: Called with (exception, item) when func raises. Without
                      one, the error is logged and re-raised.

    Yields:
        Tuples of (original_item, result) in completion order

    Example:
        >>> pairs = [(resource, data) for resource, data in planned]
        >>> for (resource, data), diags in execute_in_threads(
        ...     lambda r, d: r.read(client, d), pairs, item_to_args=lambda pair: pair
        ... ):
        ...     print(data.id, diags)
    """
    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        future_to_item = {executor.submit(func, *item_to_args(item), **item_to_kwargs(item)): item for item in items}

        for future in as_completed(future_to_item):
            item = future_to_item[future]
            try:
                result = future.result()
            except Exception as e:
                if error_handler is None:
                    logger.error(f"Error processing {item}: {e}")
                    raise
                error_handler(e, item)
                continue
            yield item, result
