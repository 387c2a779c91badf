from typing import Annotated

from fastapi import APIRouter, Depends, Query

from finance_api.core.config import Settings, get_settings
from finance_api.db.session import AsyncSessionLocal
from finance_api.schemas.reports import ErrorResponse, ReportData, ReportResponse
from finance_api.services.reports import generate_report
from finance_api.services.store import RecordStore, SqlAlchemyRecordStore

router = APIRouter()


def get_record_store() -> RecordStore:
    return SqlAlchemyRecordStore(AsyncSessionLocal)


@router.get("/healthz", response_model=dict)
async def healthz() -> dict:
    return {"status": "ok"}


@router.get(
    "/api/reports",
    response_model=ReportResponse,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def get_report(
    user_id: int,
    start_date: Annotated[str | None, Query(alias="startDate")] = None,
    end_date: Annotated[str | None, Query(alias="endDate")] = None,
    store: RecordStore = Depends(get_record_store),
    settings: Settings = Depends(get_settings),
) -> ReportResponse:
    """
    Budget-vs-actual report for ``user_id`` over ``startDate``..``endDate``.

    Both dates are inclusive. The owner id is supplied by the auth layer in
    front of this service.
    """
    result = await generate_report(store, user_id, start_date, end_date, settings=settings)
    return ReportResponse(data=ReportData.from_result(result))
