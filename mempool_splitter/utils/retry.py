#!filepath: mempool_splitter/utils/retry.py
import time
import random
from functools import wraps
from typing import Callable, Optional, Tuple, Type

from mempool_splitter import logs


class Retry:
    """
    同步重试工具，支持指数退避、日志记录和 jitter。

    retry_if: 对捕获到的异常再做一次判定，返回 False 则立即抛出
              （例如 sqlite 只有 "database is locked" 才值得重试）。
    """

    @staticmethod
    def run(
        func: Callable,
        *args,
        exceptions: Tuple[Type[Exception], ...] = (Exception,),
        max_attempts: int = 3,
        delay: float = 1.0,
        backoff: float = 2.0,
        jitter: bool = True,
        retry_if: Optional[Callable[[Exception], bool]] = None,
        **kwargs,
    ):
        """
        手动调用版本的重试机制
        """
        attempt = 1
        while True:

            try:
                return func(*args, **kwargs)

            except exceptions as e:
                if retry_if is not None and not retry_if(e):
                    raise

                if attempt >= max_attempts:
                    logs.error(f"[Retry] {func.__name__} failed after {attempt} attempt(s): {e}")
                    raise

                wait = delay * (backoff ** (attempt - 1))
                if jitter:
                    wait = wait * random.uniform(0.8, 1.2)

                logs.warning(
                    f"[Retry] {func.__name__} attempt {attempt}/{max_attempts} failed: {e}. "
                    f"retrying in {wait:.2f}s"
                )
                time.sleep(wait)

                attempt += 1

    @staticmethod
    def decorator(
        exceptions: Tuple[Type[Exception], ...] = (Exception,),
        max_attempts: int = 2,
        delay: float = 1.0,
        backoff: float = 2.0,
        jitter: bool = True,
        retry_if: Optional[Callable[[Exception], bool]] = None,
    ):
        """
        装饰器版本：同步函数使用。
        """

        def wrapper(func: Callable):
            @wraps(func)
            def inner(*args, **kwargs):
                return Retry.run(
                    func,
                    *args,
                    exceptions=exceptions,
                    max_attempts=max_attempts,
                    delay=delay,
                    backoff=backoff,
                    jitter=jitter,
                    retry_if=retry_if,
                    **kwargs,
                )

            return inner

        return wrapper
