from typing import Type, TypeVar

from pydantic import BaseModel, ValidationError

from match_engine.utils.exceptions import MalformedResponseError

T = TypeVar("T", bound=BaseModel)


def parse_structured(text: str, schema: Type[T], operation: str) -> T:
    """Validate model output against ``schema``.

    The whole text must be one JSON document of the expected shape. Anything
    else raises MalformedResponseError; there is no attempt to dig JSON out of
    surrounding prose.
    """
    if not text or not text.strip():
        raise MalformedResponseError(
            f"Empty response for {operation}", operation=operation, preview=""
        )
    try:
        return schema.model_validate_json(text.strip())
    except ValidationError as e:
        raise MalformedResponseError(
            f"Response for {operation} does not match {schema.__name__}: {e.error_count()} error(s)",
            operation=operation,
            preview=text,
            cause=e,
        ) from e
