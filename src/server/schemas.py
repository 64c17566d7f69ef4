"""
Request schemas for the eight MCP tools.

Each tool has a pydantic model whose fields use the wire names as
aliases (``graphName``, ``readOnly``...).  Types are strict: nothing is
coerced, so ``"1"`` stays text and ``"true"`` is not a boolean.
``validate_request`` turns the first validation problem into a
``ToolError`` of kind INVALID_INPUT.
"""

from enum import Enum
from typing import Annotated, Any, ClassVar, Mapping

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, StrictBool, StrictStr, ValidationError

from src.shared.exceptions import ToolError


class ToolName(str, Enum):
    QUERY_GRAPH = "query_graph"
    QUERY_GRAPH_READONLY = "query_graph_readonly"
    LIST_GRAPHS = "list_graphs"
    DELETE_GRAPH = "delete_graph"
    LIST_KEYS = "list_keys"
    SET_KEY = "set_key"
    GET_KEY = "get_key"
    DELETE_KEY = "delete_key"


def _not_blank(value: str) -> str:
    if not value.strip():
        raise ValueError("must not be blank")
    return value


RequiredText = Annotated[StrictStr, AfterValidator(_not_blank)]


class ToolRequest(BaseModel):
    """Validated input of one tool invocation."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    tool: ClassVar[ToolName]


class QueryGraphRequest(ToolRequest):
    tool: ClassVar[ToolName] = ToolName.QUERY_GRAPH

    graph_name: RequiredText = Field(alias="graphName")
    query: RequiredText
    read_only: StrictBool | None = Field(default=None, alias="readOnly")


class QueryGraphReadOnlyRequest(ToolRequest):
    # No readOnly field: this tool cannot be talked into a write.
    tool: ClassVar[ToolName] = ToolName.QUERY_GRAPH_READONLY

    graph_name: RequiredText = Field(alias="graphName")
    query: RequiredText


class ListGraphsRequest(ToolRequest):
    tool: ClassVar[ToolName] = ToolName.LIST_GRAPHS


class DeleteGraphRequest(ToolRequest):
    tool: ClassVar[ToolName] = ToolName.DELETE_GRAPH

    graph_name: RequiredText = Field(alias="graphName")


class ListKeysRequest(ToolRequest):
    tool: ClassVar[ToolName] = ToolName.LIST_KEYS


class SetKeyRequest(ToolRequest):
    tool: ClassVar[ToolName] = ToolName.SET_KEY

    key: RequiredText
    # Empty string is a legitimate value; only absence is rejected.
    value: StrictStr


class GetKeyRequest(ToolRequest):
    tool: ClassVar[ToolName] = ToolName.GET_KEY

    key: RequiredText


class DeleteKeyRequest(ToolRequest):
    tool: ClassVar[ToolName] = ToolName.DELETE_KEY

    key: RequiredText


REQUEST_MODELS: dict[ToolName, type[ToolRequest]] = {
    model.tool: model
    for model in (
        QueryGraphRequest,
        QueryGraphReadOnlyRequest,
        ListGraphsRequest,
        DeleteGraphRequest,
        ListKeysRequest,
        SetKeyRequest,
        GetKeyRequest,
        DeleteKeyRequest,
    )
}

_FIELD_LABELS = {
    "graphName": "Graph name",
    "query": "Query",
    "key": "Key",
    "value": "Value",
    "readOnly": "readOnly",
}

# Fields that identify what an invocation touched; copied into log context.
IDENTIFYING_FIELDS = ("graphName", "query", "key")


def identifying_fields(arguments: Any) -> dict[str, str]:
    """Pick the identifying text fields out of raw, unvalidated arguments."""
    if not isinstance(arguments, Mapping):
        return {}
    return {
        name: arguments[name]
        for name in IDENTIFYING_FIELDS
        if isinstance(arguments.get(name), str)
    }


def _describe(error: dict[str, Any]) -> tuple[str | None, str]:
    """Return (field, message) for one pydantic error entry."""
    loc = error.get("loc") or ()
    if not loc:
        return None, "Arguments must be an object"

    field = str(loc[0])
    label = _FIELD_LABELS.get(field, field)
    absent = error["type"] == "missing" or error.get("input") is None

    if field == "value":
        return field, "Value is required" if absent else "Value must be a string"
    if absent or error["type"] == "value_error":
        return field, f"{label} is required and cannot be empty"
    if error["type"] == "bool_type":
        return field, f"{label} must be a boolean"
    return field, f"{label} must be a string"


def validate_request(tool: ToolName | str, arguments: Mapping[str, Any] | None = None) -> ToolRequest:
    """Validate raw arguments for ``tool``.

    Fields are checked in declaration order and the first failure wins.

    Raises:
        ToolError: INVALID_INPUT naming the offending field.
    """
    try:
        name = ToolName(tool)
    except ValueError:
        raise ToolError.invalid_input(f"Unknown tool: {tool}", tool=str(tool)) from None

    model = REQUEST_MODELS[name]
    try:
        return model.model_validate({} if arguments is None else arguments)
    except ValidationError as exc:
        field, message = _describe(exc.errors()[0])
        context = {"tool": name.value}
        if field:
            context["field"] = field
        raise ToolError.invalid_input(message, **context) from exc
