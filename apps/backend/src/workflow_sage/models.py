"""API models for Workflow-Sage."""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class DiscoveryRequest(BaseModel):
    """One user turn of the workflow discovery conversation."""

    message: str = Field(..., description="The user's reply or opening message")
    conversation_id: Optional[str] = Field(
        None,
        description="Continue this conversation; omit to start a new one",
    )
    workflow_id: Optional[str] = Field(
        None,
        description="Workflow owning the conversation (defaults to the conversation's own)",
    )
    user_id: Optional[str] = Field(
        None,
        description="Required when starting a new conversation",
    )


class DiscoveryResponse(BaseModel):
    message: str
    conversation_id: str
    workflow_id: Optional[str] = None
    is_complete: bool = False


class SuggestAutomationRequest(BaseModel):
    workflow_id: str
    conversation_id: str


class SuggestAutomationResponse(BaseModel):
    suggestions: str


class IdentifyOpportunitiesRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    workflow_data: dict[str, Any] = Field(
        ...,
        alias="workflowData",
        description="Structured workflow record to analyze",
    )


class IdentifyOpportunitiesResponse(BaseModel):
    opportunities: str


class GuidanceRequest(BaseModel):
    opportunity: str = Field(..., description="Opportunity description to expand")
    workflow_id: Optional[str] = Field(
        None,
        description="Optional workflow whose details are added as context",
    )


class GuidanceResponse(BaseModel):
    guidance: str


class SearchResultModel(BaseModel):
    title: str
    link: str
    snippet: str


class WebSearchResponse(BaseModel):
    results: list[SearchResultModel]


class ErrorBody(BaseModel):
    code: str
    message: str


class ErrorResponse(BaseModel):
    error: ErrorBody


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    service: str = "Workflow-Sage Backend"


