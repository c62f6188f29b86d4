"""Run-level statistics returned by the campaign orchestrator."""
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List

# Enqueue-phase status only; per-row outcomes land later in the slot columns
STATUS_SUBMITTED = 'submitted'


@dataclass
class CampaignStats:
    """Counts from one enqueue pass. Jobs run asynchronously afterwards."""
    status: str = STATUS_SUBMITTED
    total_rows: int = 0
    enqueued: int = 0
    skipped: int = 0
    errors: List[str] = field(default_factory=list)
    job_ids: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
