"""API Schemas - Request/Response models for the API Gateway.
"""

from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field


# =============================================================================
# REQUEST SCHEMAS
# =============================================================================

class NotifyUserRequest(BaseModel):
    """Request body for the single-user notification endpoints.
    
    Accepts the mobile client's camelCase keys.
    """
    model_config = ConfigDict(populate_by_name=True)
    
    user_id: str = Field(..., min_length=1, alias="userId", description="Record key under /users")
    dry_run: bool = Field(
        default=False, alias="dryRun",
        description="Evaluate only; never contact the push relay"
    )


# =============================================================================
# RESPONSE SCHEMAS
# =============================================================================

class DeliveryOutcomeResponse(BaseModel):
    status: str = Field(..., description="delivered, relay_rejected or transport_failure")
    reason: Optional[str] = None
    details: Dict[str, Any] = Field(default_factory=dict)
    ticket_id: Optional[str] = None


class NotifyUserResponse(BaseModel):
    """Eligibility decision and, when sent, the classified delivery outcome."""
    user_id: str
    kind: str
    today: str = Field(..., description="Reference-local date the rules were checked against")
    eligible: bool
    failed_rules: List[str] = Field(default_factory=list)
    sent: bool = False
    dry_run: bool = False
    outcome: Optional[DeliveryOutcomeResponse] = None


class ErrorResponse(BaseModel):
    """Error response body."""
    error: str = Field(..., description="Error type")
    message: str = Field(..., description="Human-readable error message")
    request_id: Optional[str] = Field(default=None, description="Request ID for tracing")
