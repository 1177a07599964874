"""Exception hierarchy shared by the discovery, opportunity and guidance flows.

Every error carries an HTTP status and a machine-readable code so the API
layer can render one consistent envelope. Client errors (4xx) are safe to
show verbatim; server errors (5xx) are replaced by a generic message at the
edge and their detail only goes to the logs.
"""

from __future__ import annotations


class WorkflowSageError(Exception):
    """Base class for all errors raised by the core."""

    status_code: int = 500
    code: str = "ERR_INTERNAL"

    def __init__(self, message: str, *, details: dict | None = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(message)

    @property
    def is_client_error(self) -> bool:
        return 400 <= self.status_code < 500


# -- Client errors ---------------------------------------------------------


class BadRequestError(WorkflowSageError):
    status_code = 400
    code = "ERR_BAD_REQUEST"


class NotFoundError(WorkflowSageError):
    status_code = 404
    code = "ERR_NOT_FOUND"

    def __init__(self, resource: str, resource_id: str | None = None) -> None:
        self.resource = resource
        self.resource_id = resource_id
        msg = resource
        if resource_id is not None:
            msg += f" '{resource_id}'"
        super().__init__(f"{msg} not found")


class UnsupportedToolError(WorkflowSageError):
    """The model asked for a tool that is not registered for this flow."""

    status_code = 422
    code = "ERR_UNSUPPORTED_TOOL"

    def __init__(self, tool_name: str) -> None:
        self.tool_name = tool_name
        super().__init__(f"Unsupported tool requested: {tool_name}")


class BadToolArgumentsError(WorkflowSageError):
    """The model's tool arguments could not be parsed or are incomplete."""

    status_code = 422
    code = "ERR_BAD_TOOL_ARGUMENTS"

    def __init__(self, tool_name: str, reason: str) -> None:
        self.tool_name = tool_name
        self.reason = reason
        super().__init__(f"Bad arguments for tool '{tool_name}': {reason}")


# -- Server errors ---------------------------------------------------------


class ConfigurationError(WorkflowSageError):
    code = "ERR_CONFIGURATION"


class StorageError(WorkflowSageError):
    code = "ERR_STORAGE"


class UpstreamError(WorkflowSageError):
    """An external service (model or search backend) failed."""

    status_code = 502
    code = "ERR_UPSTREAM"


class LLMGatewayError(UpstreamError):
    code = "ERR_LLM_UPSTREAM"


class SearchError(UpstreamError):
    code = "ERR_SEARCH_UPSTREAM"


class ToolProtocolError(WorkflowSageError):
    """The model requested a tool at a stage where no tools are allowed."""

    status_code = 502
    code = "ERR_TOOL_PROTOCOL"
