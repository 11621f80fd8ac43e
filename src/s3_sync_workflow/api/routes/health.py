"""Health check routes."""

from fastapi import APIRouter, Depends

from s3_sync_workflow.api.dependencies import get_transfer_service
from s3_sync_workflow.application.services import TransferService

router = APIRouter(tags=["health"])


@router.get("/healthz")
async def healthz(
    service: TransferService = Depends(get_transfer_service),
) -> dict[str, object]:
    """Liveness probe with the number of executions running in this process."""

    return {"status": "ok", "runningExecutions": len(service.running_execution_ids)}


__all__ = ["router"]
