"""
Shared plumbing for the REST resource APIs.
"""

from typing import Any, Callable, List, TypeVar

from ..exceptions import RequestError
from ..http import RequestPipeline, Response

T = TypeVar("T")


class ResourceApi:
    """Base for the thin resource wrappers; every call goes through the pipeline."""

    def __init__(self, pipeline: RequestPipeline):
        self.pipeline = pipeline

    def _one(self, response: Response, build: Callable[[Any], T]) -> T:
        return _build(build, response.data())

    def _many(self, response: Response, build: Callable[[Any], T]) -> List[T]:
        items = response.data()
        if not isinstance(items, list):
            raise RequestError("Expected a list in the 'data' field")
        return [_build(build, item) for item in items]


def _build(build: Callable[[Any], T], payload: Any) -> T:
    try:
        return build(payload)
    except (AttributeError, KeyError, TypeError, ValueError) as e:
        raise RequestError(f"Unexpected response shape: {e!r}") from e
