"""JSON Schema utilities for tool parameter specifications."""

from typing import Any

from jsonschema import Draft7Validator
from jsonschema.exceptions import SchemaError


def check_schema(schema: dict[str, Any]) -> None:
    """
    Check that a tool parameter schema is a valid Draft 7 object schema.

    Raises:
        ValueError: If the schema is malformed or does not describe an object
    """
    try:
        Draft7Validator.check_schema(schema)
    except SchemaError as e:
        raise ValueError(f"Invalid parameter schema: {e.message}") from e

    if schema.get("type") != "object":
        raise ValueError("Tool parameters must be described by an object schema")


TYPE_MAPPING = {
    "string": "string",
    "str": "string",
    "integer": "integer",
    "int": "integer",
    "number": "number",
    "float": "number",
    "boolean": "boolean",
    "bool": "boolean",
    "array": "array",
    "list": "array",
    "object": "object",
    "dict": "object",
}


def create_tool_schema(
    parameters: list[dict[str, Any]],
    required: list[str] | None = None
) -> dict[str, Any]:
    """
    Create a JSON Schema from a list of parameter definitions.

    Args:
        parameters: List of parameter definitions with name, type, description
        required: List of required parameter names; when omitted, parameters
            without a default and not marked ``required: False`` are required

    Returns:
        JSON Schema dictionary
    """
    properties = {}

    for param in parameters:
        param_schema: dict[str, Any] = {
            "type": TYPE_MAPPING.get(param.get("type", "string"), "string"),
            "description": param.get("description", ""),
        }

        if "enum" in param:
            param_schema["enum"] = param["enum"]

        if "default" in param:
            param_schema["default"] = param["default"]

        if param_schema["type"] == "array" and "items" in param:
            param_schema["items"] = param["items"]

        properties[param["name"]] = param_schema

    if required is None:
        required = [
            p["name"] for p in parameters
            if p.get("required", True) and "default" not in p
        ]

    return {
        "type": "object",
        "properties": properties,
        "required": required,
    }
