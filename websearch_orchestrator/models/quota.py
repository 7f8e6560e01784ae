"""
Quota and chat model metadata models.
"""

from pydantic import BaseModel, Field
from typing import Optional


class ProviderQuota(BaseModel):
    """Usage counters for one search provider."""

    provider_id: str = Field(description="Provider identifier, e.g. 'brave' or 'searxng'")
    count_this_month: int = Field(default=0, ge=0, description="Uses in current_month")
    total_count: int = Field(default=0, ge=0, description="Uses since the counters were created")
    current_month: str = Field(description="Accounting month stamp, YYYY-MM")


class ModelInfo(BaseModel):
    """A chat model offered by the chat capability."""

    name: str
    size: Optional[int] = Field(default=None, description="Model size in bytes, if known")
