"""Result objects returned by the batch runner and the trigger endpoints."""

from typing import List, Optional

from pydantic import BaseModel, Field


class ItemError(BaseModel):
    """Failure of a single cadence or instance, recorded instead of aborting the batch."""

    item_type: str  # 'cadence', 'instance', 'batch'
    item_id: Optional[int] = None
    message: str


class CadenceGenerationResult(BaseModel):
    cadence_id: int
    cadence_name: str
    instances_generated: int = 0
    instances_existing: int = 0
    error: Optional[str] = None
    item_errors: List[str] = Field(default_factory=list)


class GenerationRunResult(BaseModel):
    run_id: Optional[int] = None
    lookahead_hours: float
    processed: int = 0
    generated: int = 0
    failed: int = 0
    results: List[CadenceGenerationResult] = Field(default_factory=list)
    errors: List[ItemError] = Field(default_factory=list)


class StatusSweepResult(BaseModel):
    run_id: Optional[int] = None
    updated_count: int = 0
    ready_count: int = 0
    missed_count: int = 0
    errors: List[ItemError] = Field(default_factory=list)


class CronJobInfo(BaseModel):
    job_id: str
    cron: str
    next_runs: List[str] = Field(default_factory=list)


class CronJobsResponse(BaseModel):
    scheduler_enabled: bool
    jobs: List[CronJobInfo]
