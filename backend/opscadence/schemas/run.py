from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict


class EngineRunResponse(BaseModel):
    id: int
    kind: str
    trigger_type: str
    start_time: datetime
    end_time: Optional[datetime] = None
    status: str
    items_processed: int
    items_changed: int
    items_failed: int
    error_message: Optional[str] = None
    details: Optional[Dict[str, Any]] = None

    model_config = ConfigDict(from_attributes=True)
