from pydantic import BaseModel
from typing import Optional, Literal

ReportType = Literal["dashboard", "cash-flow", "category-spending", "expenses", "investments", "goals", "trial-balance"]

class CacheInvalidateRequest(BaseModel):
    type: Optional[ReportType] = None
