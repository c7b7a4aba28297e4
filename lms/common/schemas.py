"""
Shared request/response schema base classes.
"""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """
    Base for request bodies.

    Fields are declared in snake_case and accepted on the wire in camelCase
    (snake_case input is also accepted).
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=False,
    )

    def provided(self) -> dict:
        """Fields explicitly sent by the client, keyed by python name."""
        return self.model_dump(exclude_unset=True)
