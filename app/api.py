"""HTTP route definitions for the service."""

from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.schemas import (
    EvaluateRequest,
    EvaluationResult,
    RefreshResponse,
    SnapshotOut,
)
from feeds.parsing import FeedError
from models.config import PipelineConfig, default_config
from services.forecaster import ForecastService, build_default_service
from services.pipeline import evaluate
from services.windows import DEFAULT_RANGE, range_hours
from settings import Settings, get_settings

router = APIRouter()


def get_service() -> ForecastService:
    try:
        return build_default_service()
    except FeedError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=str(exc),
        ) from exc


def get_config(settings: Settings = Depends(get_settings)) -> PipelineConfig:
    return default_config(settings.temperature_profile, settings.compare_days)


def _check_range(range_key: str) -> str:
    try:
        range_hours(range_key)
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=str(exc),
        ) from exc
    return range_key


@router.post(
    "/evaluate",
    response_model=EvaluationResult,
    summary="Clean the posted readings and classify the short-term weather trend.",
)
def evaluate_readings(
    request: EvaluateRequest,
    settings: Settings = Depends(get_settings),
    config: PipelineConfig = Depends(get_config),
) -> EvaluationResult:
    range_key = _check_range(request.range_key)
    as_of = request.as_of or datetime.now(settings.tz)
    if as_of.tzinfo is None:
        as_of = as_of.replace(tzinfo=settings.tz)

    readings = sorted((item.to_reading() for item in request.readings), key=lambda r: r.timestamp)
    result = evaluate(
        readings,
        as_of,
        config,
        range_key=range_key,
        compare_days=request.compare_days,
    )
    return EvaluationResult.model_validate(result)


@router.get(
    "/forecast",
    response_model=SnapshotOut,
    summary="Fetch the live feed, evaluate it and return the fresh snapshot.",
)
def get_forecast(
    range_key: str = Query(DEFAULT_RANGE, alias="range"),
    service: ForecastService = Depends(get_service),
) -> SnapshotOut:
    range_key = _check_range(range_key)
    try:
        snapshot = service.refresh(range_key)
    except FeedError as exc:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=str(exc),
        ) from exc
    return SnapshotOut.model_validate(snapshot)


@router.post(
    "/refresh",
    status_code=status.HTTP_202_ACCEPTED,
    response_model=RefreshResponse,
    summary="Schedule a background refresh of the live feed.",
)
def schedule_refresh(
    range_key: str = Query(DEFAULT_RANGE, alias="range"),
    service: ForecastService = Depends(get_service),
) -> RefreshResponse:
    range_key = _check_range(range_key)
    service.schedule_refresh(range_key)
    return RefreshResponse(range_key=range_key)


@router.get(
    "/snapshots/{range_key}",
    response_model=SnapshotOut,
    summary="Return the latest cached snapshot for a display range.",
)
def get_snapshot(
    range_key: str,
    service: ForecastService = Depends(get_service),
) -> SnapshotOut:
    range_key = _check_range(range_key)
    try:
        snapshot = service.latest(range_key)
    except KeyError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(exc),
        ) from exc
    return SnapshotOut.model_validate(snapshot)


@router.get(
    "/health",
    summary="Health check endpoint.",
    status_code=status.HTTP_200_OK,
)
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}


@router.get(
    "/",
    summary="Root endpoint mirrors health information.",
    status_code=status.HTTP_200_OK,
)
async def root() -> dict[str, str]:
    return {"status": "ok", "detail": "See /health for service status."}
