"""Admin action schemas."""
from pydantic import BaseModel


class DeleteResponse(BaseModel):
    job_id: int
    deleted: bool = True


class SweepResponse(BaseModel):
    demoted: int
    apply_tokens_removed: int
