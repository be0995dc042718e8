"""
GAIA CanSat Flight Analysis API Router

Explicit pipeline endpoints for the presentation layer. The server keeps one
analysis session in process; uploading a new file replaces it.

Endpoints:
    POST   /flight/upload       Upload a .csv flight log
    GET    /flight/headers      Column names, default axes, active dataset
    POST   /flight/clean        Run cleaning with a base altitude
    POST   /flight/dataset      Select the original or cleaned dataset
    GET    /flight/statistics   Per-column descriptive statistics
    GET    /flight/air-quality  Air quality classification and profile
    GET    /flight/series       Aligned x/y values for an ad-hoc chart
"""

from pathlib import Path
from typing import Optional, Union

import structlog
from fastapi import APIRouter, Depends, File, HTTPException, Query, Request, UploadFile, status
from pydantic import BaseModel, Field

from cansat.analysis.air_quality import TIER_LABELS, AltitudeBucket, tier_for
from cansat.analysis.series import default_axes
from cansat.config import settings
from cansat.exceptions import InputMissing, NoAirQualitySignal
from cansat.ingestion.parser import parse_csv_bytes
from cansat.session import AnalysisSession, DatasetState

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/flight", tags=["Flight"])

# Allowed file extensions
ALLOWED_EXTENSIONS = {".csv"}


# ── Session dependency ──────────────────────────────────────────────────────

def get_session(request: Request) -> AnalysisSession:
    """Return the process-wide analysis session, creating it on first use."""
    session = getattr(request.app.state, "session", None)
    if session is None:
        session = AnalysisSession()
        request.app.state.session = session
    return session


def _conflict(exc: InputMissing) -> HTTPException:
    return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=exc.message)


# ── Request / Response schemas ──────────────────────────────────────────────

class ParseWarningOut(BaseModel):
    code: str
    message: str
    row: Optional[int] = None


class UploadResponse(BaseModel):
    filename: str
    row_count: int
    headers: list[str]
    missing_variables: list[str] = []
    warnings: list[ParseWarningOut] = []


class HeadersResponse(BaseModel):
    headers: list[str]
    default_x: Optional[str] = None
    default_y: Optional[str] = None
    state: DatasetState
    cleaned_available: bool = False
    altitude_intervals: list[str] = []


class CleanRequest(BaseModel):
    base_altitude: Optional[float] = Field(None, description="Ground altitude in metres (default from settings)")


class DuplicateOut(BaseModel):
    index: int
    time: Optional[str] = None
    reason: str


class OutlierOut(BaseModel):
    index: int
    column: str
    value: Optional[float] = None
    raw_value: Optional[str] = None
    min_range: float
    max_range: float
    reason: str


class CleaningReportResponse(BaseModel):
    original_count: int
    cleaned_count: int
    total_removed: int
    duplicates_removed: int
    outliers_removed: int
    valid_percentage: float
    base_altitude: float
    duplicates: list[DuplicateOut] = []
    outliers: list[OutlierOut] = []


class SelectDatasetRequest(BaseModel):
    state: DatasetState


class SelectDatasetResponse(BaseModel):
    state: DatasetState
    row_count: int


class ColumnStatsOut(BaseModel):
    column: str
    unit: str = ""
    min: float
    max: float
    mean: float
    median: float
    std_dev: float
    count: int


class StatisticsResponse(BaseModel):
    state: DatasetState
    columns: list[ColumnStatsOut] = []


class TierOut(BaseModel):
    tier: str
    label: str
    count: int
    percentage: float
    values: list[float] = []


class QualitySummaryOut(BaseModel):
    total: int
    mean: Optional[float] = None
    max: Optional[float] = None
    min: Optional[float] = None
    predominant_tier: Optional[str] = None
    predominant_label: Optional[str] = None
    predominant_percentage: float = 0.0


class ProfilePointOut(BaseModel):
    altitude: float
    resistance: float
    tier: Optional[str] = None
    count: Optional[int] = None


class AirQualityResponse(BaseModel):
    state: DatasetState
    interval: Union[str, float]
    tiers: list[TierOut] = []
    summary: QualitySummaryOut
    profile: list[ProfilePointOut] = []


class SeriesResponse(BaseModel):
    x_column: str
    y_column: str
    chart_type: str
    title: str
    point_count: int
    x: list[float] = []
    y: list[float] = []


# ── POST /flight/upload ─────────────────────────────────────────────────────

@router.post(
    "/upload",
    response_model=UploadResponse,
    summary="Upload a CanSat flight CSV",
)
async def upload_flight(
    file: UploadFile = File(..., description="Flight log (.csv)"),
    session: AnalysisSession = Depends(get_session),
):
    """
    Upload a CSV flight log and make it the session's original dataset.

    The whole file is read, then parsed in one pass. A parse failure leaves
    the previous session untouched.
    """
    log = logger.bind(filename=file.filename)
    log.info("upload_received")

    if not file.filename:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Filename is required",
        )

    file_ext = Path(file.filename).suffix.lower()
    if file_ext not in ALLOWED_EXTENSIONS:
        log.warning("upload_rejected_bad_extension", extension=file_ext)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unsupported file type. Only .csv files are accepted. Got: {file_ext}",
        )

    data = bytearray()
    chunk_size = 1024 * 1024  # 1 MB chunks
    while True:
        chunk = await file.read(chunk_size)
        if not chunk:
            break
        data.extend(chunk)
        if len(data) > settings.MAX_UPLOAD_SIZE_BYTES:
            log.warning(
                "upload_rejected_too_large",
                bytes=len(data),
                max_bytes=settings.MAX_UPLOAD_SIZE_BYTES,
            )
            raise HTTPException(
                status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                detail=f"File exceeds maximum size of {settings.MAX_UPLOAD_SIZE_BYTES} bytes",
            )

    result = parse_csv_bytes(bytes(data), source_name=file.filename)
    if not result.success:
        log.warning("upload_rejected_parse_failure", error=result.error_message)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=result.error_message,
        )

    dataset = session.load(result)

    return UploadResponse(
        filename=file.filename,
        row_count=dataset.row_count,
        headers=list(dataset.headers),
        missing_variables=result.missing_variables,
        warnings=[
            ParseWarningOut(code=w.code, message=w.message, row=w.row)
            for w in result.warnings
        ],
    )


# ── GET /flight/headers ─────────────────────────────────────────────────────

@router.get("/headers", response_model=HeadersResponse)
async def get_headers(session: AnalysisSession = Depends(get_session)):
    """Column names of the active dataset, for building axis pickers."""
    try:
        headers = session.headers
    except InputMissing as exc:
        raise _conflict(exc)

    default_x, default_y = default_axes(headers)
    return HeadersResponse(
        headers=list(headers),
        default_x=default_x,
        default_y=default_y,
        state=session.state,
        cleaned_available=session.cleaned is not None,
        altitude_intervals=settings.altitude_interval_choices,
    )


# ── POST /flight/clean ──────────────────────────────────────────────────────

@router.post("/clean", response_model=CleaningReportResponse)
async def clean_flight(
    request: CleanRequest,
    session: AnalysisSession = Depends(get_session),
):
    """Rebuild the cleaned dataset and return what was removed."""
    try:
        report = session.clean(base_altitude=request.base_altitude)
    except InputMissing as exc:
        raise _conflict(exc)

    return CleaningReportResponse(
        original_count=report.original_count,
        cleaned_count=report.cleaned_count,
        total_removed=report.total_removed,
        duplicates_removed=report.duplicates_removed,
        outliers_removed=report.outliers_removed,
        valid_percentage=report.valid_percentage,
        base_altitude=report.base_altitude,
        duplicates=[
            DuplicateOut(index=d.index, time=d.time, reason=d.reason)
            for d in report.duplicates
        ],
        outliers=[
            OutlierOut(
                index=o.index,
                column=o.column,
                value=o.value,
                raw_value=None if o.raw_value is None else str(o.raw_value),
                min_range=o.min_range,
                max_range=o.max_range,
                reason=o.reason,
            )
            for o in report.outliers
        ],
    )


# ── POST /flight/dataset ────────────────────────────────────────────────────

@router.post("/dataset", response_model=SelectDatasetResponse)
async def select_dataset(
    request: SelectDatasetRequest,
    session: AnalysisSession = Depends(get_session),
):
    """Switch analysis between the original and the cleaned dataset."""
    try:
        dataset = session.select(request.state)
    except InputMissing as exc:
        raise _conflict(exc)
    return SelectDatasetResponse(state=session.state, row_count=dataset.row_count)


# ── GET /flight/statistics ──────────────────────────────────────────────────

@router.get("/statistics", response_model=StatisticsResponse)
async def get_statistics(session: AnalysisSession = Depends(get_session)):
    """Descriptive statistics for every column with numeric values."""
    try:
        stats = session.statistics()
    except InputMissing as exc:
        raise _conflict(exc)

    return StatisticsResponse(
        state=session.state,
        columns=[
            ColumnStatsOut(
                column=s.column,
                unit=s.unit,
                min=s.min,
                max=s.max,
                mean=s.mean,
                median=s.median,
                std_dev=s.std_dev,
                count=s.count,
            )
            for s in stats
        ],
    )


# ── GET /flight/air-quality ─────────────────────────────────────────────────

@router.get("/air-quality", response_model=AirQualityResponse)
async def get_air_quality(
    interval: Optional[str] = Query(None, description="'all' or an altitude band width in metres"),
    session: AnalysisSession = Depends(get_session),
):
    """Air quality tiers, headline metrics and the vertical profile."""
    try:
        report = session.air_quality(interval or settings.DEFAULT_ALTITUDE_INTERVAL)
    except InputMissing as exc:
        raise _conflict(exc)
    except NoAirQualitySignal as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=exc.message)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc))

    percentages = report.tier_percentages
    summary = report.summary
    predominant = summary.predominant_tier

    profile = []
    for point in report.points:
        tier = tier_for(point.resistance)
        profile.append(ProfilePointOut(
            altitude=point.altitude,
            resistance=point.resistance,
            tier=tier.value if tier else None,
            count=point.count if isinstance(point, AltitudeBucket) else None,
        ))

    return AirQualityResponse(
        state=session.state,
        interval=report.interval,
        tiers=[
            TierOut(
                tier=tier.value,
                label=TIER_LABELS[tier],
                count=len(values),
                percentage=percentages[tier],
                values=values,
            )
            for tier, values in report.classification.items()
        ],
        summary=QualitySummaryOut(
            total=summary.total,
            mean=summary.mean,
            max=summary.max,
            min=summary.min,
            predominant_tier=predominant.value if predominant else None,
            predominant_label=TIER_LABELS[predominant] if predominant else None,
            predominant_percentage=summary.predominant_percentage,
        ),
        profile=profile,
    )


# ── GET /flight/series ──────────────────────────────────────────────────────

@router.get("/series", response_model=SeriesResponse)
async def get_series(
    x: str = Query(..., description="X axis column"),
    y: str = Query(..., description="Y axis column"),
    chart_type: str = Query("scatter", description="scatter | line | bar"),
    session: AnalysisSession = Depends(get_session),
):
    """Aligned numeric values for an ad-hoc chart of two columns."""
    try:
        series = session.series(x, y, chart_type)
    except InputMissing as exc:
        raise _conflict(exc)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc))

    return SeriesResponse(
        x_column=series.x_column,
        y_column=series.y_column,
        chart_type=series.chart_type,
        title=series.title,
        point_count=series.point_count,
        x=series.x,
        y=series.y,
    )
