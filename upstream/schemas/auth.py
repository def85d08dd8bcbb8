from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field


class TokenRequest(BaseModel):
    api_key: str = Field(..., alias="apiKey", min_length=1)
    # Tokens issued for a user carry a ``user:<id>`` subject, which the audit log records.
    user_id: Optional[int] = Field(default=None, alias="userId")

    model_config = {
        "populate_by_name": True,
        "json_schema_extra": {
            "example": {"apiKey": "super-secret-key", "userId": 7}
        },
    }


class TokenResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int


class RefreshRequest(BaseModel):
    refresh_token: str
