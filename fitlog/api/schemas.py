from ninja import Schema


def to_camel(string: str) -> str:
    """``items_fetched`` -> ``itemsFetched``"""
    head, *rest = string.split("_")
    return head + "".join(word.capitalize() for word in rest)


class CamelSchema(Schema):
    """
    Base schema for fitlog API payloads: attributes are snake_case in Python
    and camelCase on the wire. Routes must serialize with ``by_alias=True``.
    """

    class Config(Schema.Config):
        alias_generator = to_camel
        populate_by_name = True


class ErrorOut(CamelSchema):
    """Body of an expected, non-2xx outcome"""

    detail: str
