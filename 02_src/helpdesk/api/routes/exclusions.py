"""Exclusion list routes."""

from pydantic import BaseModel, ConfigDict, Field
from fastapi import APIRouter, HTTPException

from ...app import Application


class ExclusionRequest(BaseModel):
    """Request model for adding an excluded conversation."""

    model_config = ConfigDict(populate_by_name=True)

    conversation_id: str = Field(alias="id")


class ExclusionsResponse(BaseModel):
    """Response model for the exclusion list."""

    ids: list[str]


def create_exclusions_router(app: Application) -> APIRouter:
    """Create exclusions router."""
    router = APIRouter(prefix="/api/exclusions", tags=["exclusions"])

    @router.get("", response_model=ExclusionsResponse)
    async def list_exclusions() -> dict:
        return {"ids": app.inbox.list_exclusions()}

    @router.post("", response_model=ExclusionsResponse)
    async def add_exclusion(request: ExclusionRequest) -> dict:
        """Exclude a conversation from intake."""
        if not request.conversation_id.strip():
            raise HTTPException(status_code=400, detail="Conversation id is required")
        return {"ids": app.inbox.add_exclusion(request.conversation_id)}

    @router.delete("/{conversation_id}", response_model=ExclusionsResponse)
    async def remove_exclusion(conversation_id: str) -> dict:
        return {"ids": app.inbox.remove_exclusion(conversation_id)}

    return router
