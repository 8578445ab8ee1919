import logging
from functools import wraps
from typing import Callable

from pydantic import BaseModel, ValidationError

logger = logging.getLogger(__name__)


def read_through(key_builder: Callable[..., str], model: type[BaseModel]):
    """
    Decorator for async service methods. key_builder receives the same
    args/kwargs as the method, minus ``self``. The instance must expose
    ``cache`` and ``cache_ttl``.
    Example:
      @read_through(lambda task_id: f"task-{task_id}", TaskResponse)
      async def get_task(self, task_id): ...

    Only non-None results are cached. An entry that no longer parses as
    ``model`` is treated as a miss.
    """

    def decorator(fn: Callable):
        @wraps(fn)
        async def wrapper(self, *args, **kwargs):
            key = key_builder(*args, **kwargs)

            raw = await self.cache.get(key)
            if raw is not None:
                try:
                    value = model.model_validate_json(raw)
                    logger.debug("Cache hit", extra={"key": key})
                    return value
                except ValidationError as e:
                    logger.warning(
                        f"Discarding unreadable cache entry: {e}", extra={"key": key}
                    )

            logger.debug("Cache miss, loading from store", extra={"key": key})
            value = await fn(self, *args, **kwargs)
            if value is None:
                return None

            await self.cache.set(key, value.model_dump_json(by_alias=True), self.cache_ttl)
            return value

        return wrapper

    return decorator


def invalidates(*patterns: str):
    """
    Delete every cache key matching ``patterns`` once the wrapped mutation
    has succeeded. A result of None or False means nothing changed and
    leaves the cache alone.
    """

    def decorator(fn: Callable):
        @wraps(fn)
        async def wrapper(self, *args, **kwargs):
            result = await fn(self, *args, **kwargs)
            if result is None or result is False:
                return result

            for pattern in patterns:
                await self.cache.delete_pattern(pattern)
            return result

        return wrapper

    return decorator
