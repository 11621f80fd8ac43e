"""Transfer engine: chunk planning, part uploads and orchestration."""

from s3_sync_workflow.application.transfers.chunk_planner import (
    fill_buffers,
    part_count,
    plan_ranges,
    plan_slices,
)
from s3_sync_workflow.application.transfers.part_uploader import PartUploader, part_step_name
from s3_sync_workflow.application.transfers.transfer_orchestrator import (
    ABORT_UPLOAD_STEP,
    COMPLETE_UPLOAD_STEP,
    DEFAULT_PART_SIZE,
    INIT_UPLOAD_STEP,
    PROBE_SIZE_STEP,
    PUT_OBJECT_STEP,
    TransferOrchestrator,
)

__all__ = [
    "ABORT_UPLOAD_STEP",
    "COMPLETE_UPLOAD_STEP",
    "DEFAULT_PART_SIZE",
    "INIT_UPLOAD_STEP",
    "PROBE_SIZE_STEP",
    "PUT_OBJECT_STEP",
    "PartUploader",
    "TransferOrchestrator",
    "fill_buffers",
    "part_count",
    "part_step_name",
    "plan_ranges",
    "plan_slices",
]
