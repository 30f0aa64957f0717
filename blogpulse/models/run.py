"""Run model for tracking harvest executions."""

from datetime import date, datetime
from typing import Any, Dict, Optional

from pydantic import Field

from .base import DBModel


class Run(DBModel):
    """Harvest run model."""

    run_date: date = Field(..., description="Logical date of the run")
    started_at: datetime = Field(..., description="When the run started")
    finished_at: Optional[datetime] = Field(None, description="When the run finished")
    status: str = Field("running", description="Run status (success, failed, running)")
    stats_json: Optional[Dict[str, Any]] = Field(None, description="Aggregate run statistics")
