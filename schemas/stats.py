from pydantic import BaseModel
from typing import Optional


class StatsResponse(BaseModel):
    online_count: int
    waiting_count: int
    paired_count: int
    cluster_online_count: Optional[int] = None
    pairs_formed: Optional[int] = None

class HealthResponse(BaseModel):
    status: str
