import functools
import logging
from typing import Callable, TypeVar

FunctionT = TypeVar("FunctionT", bound=Callable)
ReturnT = TypeVar("ReturnT")


def join_paragraphs(lines: list[str]) -> str:
    return "\n\n".join([line for line in lines if line])


def log_errors(logger: logging.Logger, errmsg: str, return_on_error: ReturnT) -> Callable[[FunctionT], FunctionT]:
    def decorator(func: FunctionT) -> FunctionT:
        @functools.wraps(func)
        def wrapper(*args, **kwargs) -> ReturnT:
            try:
                return func(*args, **kwargs)
            except Exception:
                logger.exception(errmsg)
                return return_on_error

        return wrapper  # type: ignore

    return decorator
