from .health import HealthResponse
from .search import ErrorDetail, ErrorResponse, ToolsResponse

__all__ = [
    "ErrorDetail",
    "ErrorResponse",
    "HealthResponse",
    "ToolsResponse",
]
