from searchapi_mcp.tools.shopping import TOOL_NAME, GoogleShoppingSearchArguments, ShoppingSearchTool

__all__ = ["TOOL_NAME", "GoogleShoppingSearchArguments", "ShoppingSearchTool"]
