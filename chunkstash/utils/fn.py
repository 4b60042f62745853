import asyncio

from typing import Awaitable, Callable, Iterable, List, Tuple, TypeVar, Union

from chunkstash.utils import logger

T = TypeVar("T")
R = TypeVar("R")


async def do_parallel(
    func: Callable[[T], Awaitable[R]], args_list: Iterable[T], n=-1, desc=None, return_args=True, return_exceptions=False
) -> List[Union[Tuple[T, R], R]]:
    """Await func over args_list concurrently with at most n coroutines in flight (n <= 0 is unbounded).

    Results keep the order of args_list. With return_exceptions=True a failing call yields its exception
    as the result instead of cancelling the batch.
    """
    args_list = list(args_list)
    if len(args_list) == 0:
        return []

    if n <= 0:
        n = len(args_list)
    semaphore = asyncio.Semaphore(n)

    async def wrapped_fn(args):
        async with semaphore:
            try:
                return await func(args)
            except Exception as e:
                if not return_exceptions:
                    logger.fs.error(f"Error running {getattr(func, '__name__', 'unknown function')}: {e}")
                raise

    results = await asyncio.gather(*[wrapped_fn(args) for args in args_list], return_exceptions=return_exceptions)
    if desc:
        logger.fs.debug(f"[do_parallel] {desc} ({len(results)}/{len(args_list)})")
    return list(zip(args_list, results)) if return_args else list(results)
