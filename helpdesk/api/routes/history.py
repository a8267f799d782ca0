from __future__ import annotations

from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from helpdesk.api.responses import ApiResponse, CountResponse
from helpdesk.api.types import UuidStr
from helpdesk.core.errors import NotFoundError
from helpdesk.dependencies import get_activity_reports, get_history_queries, get_history_recorder
from helpdesk.tickets.models import HistoryEntry
from helpdesk.tickets.queries import HistoryQueryService
from helpdesk.tickets.recorder import BatchRecordResult, BatchStatus, HistoryChange, HistoryRecorder
from helpdesk.tickets.reports import ActivityReportGenerator
from helpdesk.tickets.state import TicketStatus

router = APIRouter(prefix="/ticket-history", tags=["ticket-history"])


class HistoryChangeRequest(BaseModel):
    ticket_id: UuidStr
    status: str = Field(..., min_length=1, max_length=50)
    changed_by: UuidStr
    changed_at: datetime | None = None
    notes: str | None = Field(default=None, max_length=1000)

    def to_change(self) -> HistoryChange:
        return HistoryChange(
            ticket_id=self.ticket_id,
            status=self.status,
            changed_by=self.changed_by,
            notes=self.notes,
            changed_at=self.changed_at,
        )


class HistoryBatchRequest(BaseModel):
    changes: list[HistoryChangeRequest] = Field(..., min_length=1)


class HistoryEntryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    ticket_id: str
    status: TicketStatus
    changed_by: str
    changed_at: datetime
    notes: str | None


class HistoryBatchResponse(BaseModel):
    status: BatchStatus
    recorded: list[HistoryEntryResponse]
    failed_index: int | None = None
    error: str | None = None


class ActivityReportResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True, alias_generator=to_camel, populate_by_name=True)

    total_changes: int
    first_change: HistoryEntryResponse | None
    last_change: HistoryEntryResponse | None
    status_changes: list[HistoryEntryResponse]
    unique_users: list[str]


class LatestHistoryNotFoundError(NotFoundError):
    """Raised when a ticket has no history yet."""


RecorderDep = Annotated[HistoryRecorder, Depends(get_history_recorder)]
QueriesDep = Annotated[HistoryQueryService, Depends(get_history_queries)]
ReportsDep = Annotated[ActivityReportGenerator, Depends(get_activity_reports)]


def _to_response(entry: HistoryEntry) -> HistoryEntryResponse:
    return HistoryEntryResponse.model_validate(entry)


def _to_list(entries: list[HistoryEntry], message: str) -> ApiResponse[list[HistoryEntryResponse]]:
    return ApiResponse(message=message.format(count=len(entries)), data=[_to_response(e) for e in entries])


def _to_batch_response(result: BatchRecordResult) -> HistoryBatchResponse:
    return HistoryBatchResponse(
        status=result.status,
        recorded=[_to_response(entry) for entry in result.recorded],
        failed_index=result.failure.index if result.failure else None,
        error=str(result.failure.error) if result.failure else None,
    )


@router.post("", response_model=ApiResponse[HistoryEntryResponse], status_code=status.HTTP_201_CREATED)
async def record_change(payload: HistoryChangeRequest, recorder: RecorderDep) -> ApiResponse[HistoryEntryResponse]:
    entry = await recorder.record_change(
        payload.ticket_id,
        payload.status,
        payload.changed_by,
        notes=payload.notes,
        changed_at=payload.changed_at,
    )
    return ApiResponse(message="Change recorded", data=_to_response(entry))


@router.post(
    "/batch",
    response_model=ApiResponse[HistoryBatchResponse],
    status_code=status.HTTP_201_CREATED,
    responses={207: {"description": "Some changes were recorded before a failure"}},
)
async def record_multiple_changes(payload: HistoryBatchRequest, recorder: RecorderDep):
    result = await recorder.record_multiple_changes([change.to_change() for change in payload.changes])
    if result.status is BatchStatus.FAILED:
        raise result.failure.error
    body = _to_batch_response(result)
    if result.status is BatchStatus.PARTIAL:
        envelope = ApiResponse(success=False, message=f"Batch stopped at item {body.failed_index}", data=body)
        return JSONResponse(status_code=207, content=envelope.model_dump(mode="json"))
    return ApiResponse(message=f"{len(body.recorded)} changes recorded", data=body)


@router.get("/date-range", response_model=ApiResponse[list[HistoryEntryResponse]])
async def get_history_by_date_range(
    queries: QueriesDep,
    start_date: str | None = Query(default=None, alias="startDate"),
    end_date: str | None = Query(default=None, alias="endDate"),
) -> ApiResponse[list[HistoryEntryResponse]]:
    entries = await queries.by_date_range(start_date, end_date)
    return _to_list(entries, "{count} entries found in range")


@router.get("/ticket/{ticket_id}", response_model=ApiResponse[list[HistoryEntryResponse]])
async def get_history_by_ticket(ticket_id: str, queries: QueriesDep) -> ApiResponse[list[HistoryEntryResponse]]:
    return _to_list(await queries.by_ticket(ticket_id), "{count} history entries found")


@router.get("/ticket/{ticket_id}/count", response_model=ApiResponse[CountResponse])
async def count_history_by_ticket(ticket_id: str, queries: QueriesDep) -> ApiResponse[CountResponse]:
    count = await queries.count_by_ticket(ticket_id)
    return ApiResponse(message="Count completed", data=CountResponse(count=count))


@router.get("/ticket/{ticket_id}/latest", response_model=ApiResponse[HistoryEntryResponse])
async def get_latest_history_by_ticket(ticket_id: str, queries: QueriesDep) -> ApiResponse[HistoryEntryResponse]:
    entry = await queries.latest_by_ticket(ticket_id)
    if entry is None:
        raise LatestHistoryNotFoundError("No history entries found for ticket")
    return ApiResponse(message="Latest history entry found", data=_to_response(entry))


@router.get("/ticket/{ticket_id}/report", response_model=ApiResponse[ActivityReportResponse])
async def generate_activity_report(ticket_id: str, reports: ReportsDep) -> ApiResponse[ActivityReportResponse]:
    report = await reports.generate(ticket_id)
    return ApiResponse(message="Activity report generated", data=ActivityReportResponse.model_validate(report))


@router.get("/user/{user_id}", response_model=ApiResponse[list[HistoryEntryResponse]])
async def get_history_by_user(user_id: str, queries: QueriesDep) -> ApiResponse[list[HistoryEntryResponse]]:
    return _to_list(await queries.by_actor(user_id), "{count} changes found for user")


@router.get("/status/{status_value}", response_model=ApiResponse[list[HistoryEntryResponse]])
async def get_history_by_status(status_value: str, queries: QueriesDep) -> ApiResponse[list[HistoryEntryResponse]]:
    return _to_list(await queries.by_status(status_value), "{count} changes found for status")


@router.get("/{entry_id}", response_model=ApiResponse[HistoryEntryResponse])
async def get_history_by_id(entry_id: str, queries: QueriesDep) -> ApiResponse[HistoryEntryResponse]:
    entry = await queries.by_id(entry_id)
    return ApiResponse(message="History entry found", data=_to_response(entry))
