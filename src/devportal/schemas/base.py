"""Shared base for API schemas.

Learn: The wire format is camelCase (shortDescription, totalRequests,
createdAt) while Python attributes stay snake_case. alias_generator
maps one to the other; populate_by_name lets ORM rows and keyword
arguments use the Python names. FastAPI serializes response_model
output by alias, so clients only ever see camelCase.
"""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )
