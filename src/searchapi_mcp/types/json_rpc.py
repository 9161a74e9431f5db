"""JSON-RPC 2.0 framing.

Every body posted to the MCP endpoint is exactly one of these four frames.
``JSONRPCMessageAdapter`` picks the right one from the fields present: ``id``
plus ``method`` is a request, ``method`` alone a notification, ``result`` or
``error`` a response.
"""

from typing import Annotated, Any, Final, Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

JSONRPC_VERSION: Final[str] = "2.0"

PARSE_ERROR: Final[int] = -32700
INVALID_REQUEST: Final[int] = -32600
METHOD_NOT_FOUND: Final[int] = -32601
INVALID_PARAMS: Final[int] = -32602
INTERNAL_ERROR: Final[int] = -32603

# Server-defined range (-32000 to -32099)
NO_VALID_SESSION: Final[int] = -32000

# Strict so that 1.0 is not silently accepted as the id 1
RequestId = Annotated[int, Field(strict=True)] | str


class _Frame(BaseModel):
    model_config = ConfigDict(extra="allow")

    jsonrpc: Literal["2.0"] = JSONRPC_VERSION


class JSONRPCRequest(_Frame):
    """A call that the receiver must answer with a response carrying the same id."""

    id: RequestId
    method: str
    params: dict[str, Any] | None = None


class JSONRPCNotification(_Frame):
    """A one-way message; nothing is sent back."""

    method: str
    params: dict[str, Any] | None = None


class ErrorData(BaseModel):
    model_config = ConfigDict(extra="allow")

    code: int
    message: str
    data: Any | None = None


class JSONRPCResultResponse(_Frame):
    id: RequestId
    result: dict[str, Any]


class JSONRPCErrorResponse(_Frame):
    # None when the failing request could not be parsed far enough to read its id
    id: RequestId | None = None
    error: ErrorData


JSONRPCResponse = JSONRPCResultResponse | JSONRPCErrorResponse
JSONRPCMessage = JSONRPCRequest | JSONRPCNotification | JSONRPCResponse

JSONRPCMessageAdapter: TypeAdapter[JSONRPCMessage] = TypeAdapter(JSONRPCMessage)


def error_response(code: int, message: str, request_id: RequestId | None = None) -> JSONRPCErrorResponse:
    return JSONRPCErrorResponse(id=request_id, error=ErrorData(code=code, message=message))
