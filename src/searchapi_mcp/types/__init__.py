from searchapi_mcp.types.json_rpc import (
    INTERNAL_ERROR,
    INVALID_PARAMS,
    INVALID_REQUEST,
    METHOD_NOT_FOUND,
    NO_VALID_SESSION,
    PARSE_ERROR,
    ErrorData,
    JSONRPCErrorResponse,
    JSONRPCMessage,
    JSONRPCMessageAdapter,
    JSONRPCNotification,
    JSONRPCRequest,
    JSONRPCResponse,
    JSONRPCResultResponse,
    RequestId,
    error_response,
)
from searchapi_mcp.types.logging import (
    LoggingLevel,
    LoggingMessageNotificationParams,
    SetLevelRequestParams,
    is_level_enabled,
)
from searchapi_mcp.types.protocol import (
    LATEST_PROTOCOL_VERSION,
    SUPPORTED_PROTOCOL_VERSIONS,
    ClientCapabilities,
    EmptyResult,
    Implementation,
    InitializeRequestParams,
    InitializeResult,
    ServerCapabilities,
    TextContent,
)
from searchapi_mcp.types.tools import CallToolRequestParams, CallToolResult, JsonSchema, ListToolsResult, Tool

__all__ = [
    "LATEST_PROTOCOL_VERSION",
    "SUPPORTED_PROTOCOL_VERSIONS",
    "INTERNAL_ERROR",
    "INVALID_PARAMS",
    "INVALID_REQUEST",
    "METHOD_NOT_FOUND",
    "NO_VALID_SESSION",
    "PARSE_ERROR",
    "CallToolRequestParams",
    "CallToolResult",
    "ClientCapabilities",
    "EmptyResult",
    "ErrorData",
    "Implementation",
    "InitializeRequestParams",
    "InitializeResult",
    "JSONRPCErrorResponse",
    "JSONRPCMessage",
    "JSONRPCMessageAdapter",
    "JSONRPCNotification",
    "JSONRPCRequest",
    "JSONRPCResponse",
    "JSONRPCResultResponse",
    "JsonSchema",
    "ListToolsResult",
    "LoggingLevel",
    "LoggingMessageNotificationParams",
    "RequestId",
    "ServerCapabilities",
    "SetLevelRequestParams",
    "TextContent",
    "Tool",
    "error_response",
    "is_level_enabled",
]
