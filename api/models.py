from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from ingestion.services.security_log import SecurityEventType


class SecurityEventOut(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    type: SecurityEventType
    details: str
    url: Optional[str] = None
    timestamp: datetime
