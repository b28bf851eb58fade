import functools
from typing import Any, Callable, TypeVar

T = TypeVar("T")


def synchronized(method: Callable[..., T]) -> Callable[..., T]:
    """
    Run a method while holding the instance's `_lock`.
    """

    @functools.wraps(method)
    def synchronized_method(self, *args: Any, **kwargs: Any) -> T:
        with self._lock:
            return method(self, *args, **kwargs)

    return synchronized_method
