from typing import Any, TypeVar

import pydantic
from sqlmodel import SQLModel

from tasknotes.core.errors import ValidationError

SchemaT = TypeVar("SchemaT", bound=SQLModel)


def validate_input(schema: type[SchemaT], data: Any) -> SchemaT:
    """Coerce caller input into ``schema`` or raise the domain ValidationError."""
    if isinstance(data, schema):
        return data
    if isinstance(data, SQLModel):
        data = data.model_dump()
    try:
        return schema.model_validate(data)
    except pydantic.ValidationError as e:
        details = [
            {
                "field": ".".join(str(loc) for loc in err["loc"]),
                "message": err["msg"],
                "type": err["type"],
            }
            for err in e.errors()
        ]
        raise ValidationError(f"Invalid {schema.__name__} data", details) from e
