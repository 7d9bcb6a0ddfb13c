from enum import Enum
from pydantic import BaseModel, ConfigDict, Field
from typing import Optional
from datetime import datetime

class InvoiceStatus(str, Enum):
    PENDING = "pending"
    ERROR = "error"
    SUCCESS = "success"

class Invoice(BaseModel):
    """Snapshot of a claimed invoice row as seen at the start of a cycle."""
    model_config = ConfigDict(frozen=True)

    id: int
    status: InvoiceStatus
    retry_count: int = Field(default=0, ge=0)
    updated_at: Optional[datetime] = None
    last_attempt_at: Optional[datetime] = None
