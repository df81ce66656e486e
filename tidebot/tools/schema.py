"""
Self-describing value schemas for tool parameters and structured output.

A SchemaDescriptor is a small recursive tree: scalar leaves (integer, float,
boolean, string) and object nodes holding an ordered list of named fields.
It documents what a tool expects independently of any provider format, and
convert_schema() compiles it into the JSON-schema dialect LLM providers
accept for function parameters and response formats.

Example:
    >>> params = SchemaDescriptor.object(
    ...     "parameters",
    ...     "arguments",
    ...     [SchemaDescriptor.string("prompt", "Prompt for the image model")],
    ... )
    >>> convert_schema(params)["required"]
    ['prompt']
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Iterable

from pydantic import BaseModel, ConfigDict, Field, model_validator


class SchemaKind(str, Enum):
    INTEGER = "integer"
    FLOAT = "float"
    BOOLEAN = "boolean"
    STRING = "string"
    OBJECT = "object"


# JSON-schema "type" keyword for each kind
_JSON_TYPES = {
    SchemaKind.INTEGER: "integer",
    SchemaKind.FLOAT: "number",
    SchemaKind.BOOLEAN: "boolean",
    SchemaKind.STRING: "string",
    SchemaKind.OBJECT: "object",
}


class SchemaDescriptor(BaseModel):
    """
    One node of a value schema.

    Only OBJECT nodes carry fields. Field names must be unique within an
    object. Instances are frozen; build the tree bottom-up with the
    constructor classmethods.
    """

    name: str = Field(description="Field name (property key inside the parent object)")
    description: str = Field(description="Human-readable description shown to the model")
    kind: SchemaKind = Field(description="Value shape")
    fields: tuple[SchemaDescriptor, ...] = Field(
        default=(), description="Ordered child fields (OBJECT only)"
    )

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def _check_fields(self) -> SchemaDescriptor:
        if self.kind is not SchemaKind.OBJECT and self.fields:
            raise ValueError(f"scalar schema {self.name!r} cannot have fields")
        names = [f.name for f in self.fields]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ValueError(f"duplicate field names in {self.name!r}: {duplicates}")
        return self

    @classmethod
    def integer(cls, name: str, description: str) -> SchemaDescriptor:
        return cls(name=name, description=description, kind=SchemaKind.INTEGER)

    @classmethod
    def boolean(cls, name: str, description: str) -> SchemaDescriptor:
        return cls(name=name, description=description, kind=SchemaKind.BOOLEAN)

    @classmethod
    def string(cls, name: str, description: str) -> SchemaDescriptor:
        return cls(name=name, description=description, kind=SchemaKind.STRING)

    @classmethod
    def object(
        cls,
        name: str,
        description: str,
        fields: Iterable[SchemaDescriptor] = (),
    ) -> SchemaDescriptor:
        return cls(
            name=name,
            description=description,
            kind=SchemaKind.OBJECT,
            fields=tuple(fields),
        )

    # Defined last so the builtin stays visible to the methods above
    @classmethod
    def float(cls, name: str, description: str) -> SchemaDescriptor:
        return cls(name=name, description=description, kind=SchemaKind.FLOAT)


def convert_schema(descriptor: SchemaDescriptor) -> dict[str, Any]:
    """
    Compile a SchemaDescriptor into a JSON-schema dict.

    Scalars become ``{"type", "description"}``. Objects list every field as
    required and forbid additional properties, which is what strict
    function-calling and structured-output modes expect. Property order
    follows declaration order.
    """
    json_type = _JSON_TYPES[descriptor.kind]
    if descriptor.kind is not SchemaKind.OBJECT:
        return {"type": json_type, "description": descriptor.description}

    properties = {field.name: convert_schema(field) for field in descriptor.fields}
    return {
        "type": json_type,
        "properties": properties,
        "required": list(properties),
        "additionalProperties": False,
    }
