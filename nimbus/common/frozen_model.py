from typing import Any
from typing import Self

from pydantic import BaseModel
from pydantic import ConfigDict


class FrozenModel(BaseModel):
    """Base class for immutable pydantic models that prevent attribute mutation after construction."""

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        arbitrary_types_allowed=False,
    )

    def with_updates(self, **updates: Any) -> Self:
        """Return a validated copy with the given top-level fields replaced.

        Unlike model_copy(update=...), the result is re-validated, so an update
        with the wrong type fails loudly instead of producing a half-typed model.
        """
        unknown_fields = set(updates) - set(type(self).model_fields)
        if unknown_fields:
            raise ValueError(f"Unknown fields for {type(self).__name__}: {', '.join(sorted(unknown_fields))}")
        return type(self).model_validate({**self.__dict__, **updates})
