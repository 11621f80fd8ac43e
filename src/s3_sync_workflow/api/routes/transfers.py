"""Transfer execution routes."""

from __future__ import annotations

from typing import NoReturn

from fastapi import APIRouter, Depends, HTTPException, Path
from fastapi.responses import JSONResponse

from s3_sync_workflow.api.dependencies import get_transfer_service
from s3_sync_workflow.application.services import TransferService
from s3_sync_workflow.domain.entities import TransferRequest
from s3_sync_workflow.domain.errors import (
    ExecutionConflictError,
    ExecutionNotFoundError,
    TransferValidationError,
)
from s3_sync_workflow.domain.transfer_models import (
    TransferCreatedResponse,
    TransferCreateMessage,
    TransferListResponse,
    TransferStatusResponse,
)

router = APIRouter(prefix="/transfers", tags=["transfers"])


def _raise_http_exception(exc: Exception) -> NoReturn:
    if isinstance(exc, ExecutionNotFoundError):
        raise HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, ExecutionConflictError):
        raise HTTPException(status_code=409, detail=str(exc))
    if isinstance(exc, TransferValidationError):
        raise HTTPException(status_code=400, detail=str(exc))
    raise HTTPException(status_code=500, detail="Unexpected transfer error")


def _json(
    model: TransferCreatedResponse | TransferStatusResponse | TransferListResponse,
    status_code: int = 200,
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=model.model_dump(mode="json", by_alias=True),
    )


@router.post(
    "",
    response_model=TransferCreatedResponse,
    status_code=201,
    responses={400: {"description": "Bad request"}},
)
async def create_transfer(
    message: TransferCreateMessage,
    service: TransferService = Depends(get_transfer_service),
) -> JSONResponse:
    """Start a durable transfer of one key."""

    try:
        execution = await service.create(TransferRequest(key=message.key))
    except Exception as exc:  # noqa: BLE001
        _raise_http_exception(exc)

    return _json(TransferCreatedResponse(instance_id=execution.execution_id), status_code=201)


@router.get("", response_model=TransferListResponse, status_code=200)
async def list_transfers(
    service: TransferService = Depends(get_transfer_service),
) -> JSONResponse:
    """List known transfer executions."""

    try:
        executions = await service.list_executions()
    except Exception as exc:  # noqa: BLE001
        _raise_http_exception(exc)

    return _json(
        TransferListResponse(
            transfers=[TransferStatusResponse.from_execution(item) for item in executions]
        )
    )


@router.get("/{id}", response_model=TransferStatusResponse, status_code=200)
async def get_transfer_status(
    id: str = Path(...),
    service: TransferService = Depends(get_transfer_service),
) -> JSONResponse:
    """Return the status of one execution."""

    try:
        execution = await service.get_status(id)
    except Exception as exc:  # noqa: BLE001
        _raise_http_exception(exc)

    return _json(TransferStatusResponse.from_execution(execution))


@router.delete("/{id}", response_model=TransferStatusResponse, status_code=200)
async def terminate_transfer(
    id: str = Path(...),
    service: TransferService = Depends(get_transfer_service),
) -> JSONResponse:
    """Terminate one execution without aborting its multipart upload."""

    try:
        execution = await service.terminate(id)
    except Exception as exc:  # noqa: BLE001
        _raise_http_exception(exc)

    return _json(TransferStatusResponse.from_execution(execution))


__all__ = ["router"]
