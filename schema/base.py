# schema/base.py
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """
    Base for every request/response body.

    Fields are declared in snake_case and travel as camelCase on the wire;
    request bodies accept either spelling.
    """
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class SuccessOut(CamelModel):
    success: bool = True


class MessageOut(CamelModel):
    success: bool = True
    message: str
