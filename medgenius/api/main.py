"""HTTP API of the report service, plus the checkup and medicine endpoints."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Annotated

import psycopg
import uvicorn
from fastapi import APIRouter, Depends, FastAPI, File, HTTPException, Query, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

from medgenius.api.schemas import (
    CheckupRequest,
    CheckupResponse,
    MedicineResponse,
    ReportDetail,
    ReportResponse,
    UploadedReport,
    UploadResponse,
)
from medgenius.checkup.symptoms import analyze_symptoms
from medgenius.config.settings import Settings
from medgenius.database.connection import apply_schema, close_pool, init_pool
from medgenius.database.repositories.report_repository import ReportRepository
from medgenius.logging.logger import Log
from medgenius.medinfo.medicine import MedicineLookup
from medgenius.storage.exceptions import StorageError
from medgenius.storage.file_store import URL_PREFIX, FileStore

router = APIRouter()


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_report_repository(request: Request) -> ReportRepository:
    return request.app.state.report_repo


def get_file_store(request: Request) -> FileStore:
    return request.app.state.file_store


def get_medicine_lookup(request: Request) -> MedicineLookup:
    return request.app.state.medicine_lookup


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build the API application; the database pool opens on startup."""
    settings = settings or Settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        init_pool(settings)
        apply_schema()
        Log.info(f"Report service started, uploads in {settings.upload_dir}")
        try:
            yield
        finally:
            close_pool()

    app = FastAPI(title="MedGenius API", version="0.1.0", lifespan=lifespan)
    app.state.settings = settings
    app.state.report_repo = ReportRepository()
    app.state.file_store = FileStore(settings.upload_dir)
    app.state.medicine_lookup = MedicineLookup(
        settings.medicine_api_url,
        timeout_seconds=settings.medicine_api_timeout_seconds,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.mount(
        URL_PREFIX,
        StaticFiles(directory=settings.upload_dir, check_dir=False),
        name="uploads",
    )
    app.add_exception_handler(StarletteHTTPException, _http_error_handler)
    app.add_exception_handler(RequestValidationError, _validation_error_handler)

    app.include_router(router)
    return app


@router.get("/", response_class=PlainTextResponse)
def root() -> str:
    return "MedGenius API is running"


@router.post("/api/reports/upload", status_code=201, response_model=UploadResponse)
def upload_report(
    settings: Annotated[Settings, Depends(get_settings)],
    report_repo: Annotated[ReportRepository, Depends(get_report_repository)],
    file_store: Annotated[FileStore, Depends(get_file_store)],
    file: Annotated[UploadFile | None, File()] = None,
) -> UploadResponse:
    if file is None or not file.filename:
        raise HTTPException(status_code=400, detail="No file uploaded")
    if file.content_type not in settings.allowed_media_types:
        raise HTTPException(
            status_code=400,
            detail="Invalid file type. Only JPEG, PNG, DICOM, and PDF are allowed.",
        )
    content = file.file.read()
    if len(content) > settings.max_upload_bytes:
        raise HTTPException(
            status_code=413,
            detail=f"File too large. Maximum size is {settings.max_upload_bytes} bytes.",
        )

    try:
        stored = file_store.save(file.filename, content)
    except StorageError as exc:
        Log.error(f"Upload of {file.filename} failed: {exc}")
        raise HTTPException(status_code=500, detail="Server error during upload") from exc
    try:
        report = report_repo.create(
            file_name=file.filename,
            file_type=file.content_type,
            file_size=len(content),
            file_url=stored.url,
            stored_name=stored.stored_name,
        )
    except psycopg.Error as exc:
        Log.error(f"Saving report for {file.filename} failed: {exc}")
        file_store.delete(stored.stored_name)
        raise HTTPException(status_code=500, detail="Server error during upload") from exc

    Log.info(f"Report {report.id} queued for analysis ({file.filename}, {len(content)} bytes)")
    return UploadResponse(
        message="File uploaded successfully",
        report=UploadedReport(id=report.id, file_name=report.file_name, status=report.status),
    )


@router.get("/api/reports/{report_id}", response_model=ReportResponse)
def get_report(
    report_id: str,
    report_repo: Annotated[ReportRepository, Depends(get_report_repository)],
) -> ReportResponse:
    try:
        report = report_repo.find_by_id(report_id)
    except psycopg.Error as exc:
        Log.error(f"Failed to load report {report_id}: {exc}")
        raise HTTPException(status_code=500, detail="Server error") from exc
    if report is None:
        raise HTTPException(status_code=404, detail="Report not found")
    return ReportResponse(report=ReportDetail.from_record(report))


@router.post("/api/checkup/analyze", response_model=CheckupResponse)
def analyze_checkup(body: CheckupRequest) -> CheckupResponse:
    result = analyze_symptoms(body.symptoms, body.user.to_domain())
    return CheckupResponse.from_result(result)


@router.get("/api/medicine/search", response_model=MedicineResponse)
def search_medicine(
    name: Annotated[str, Query(min_length=1)],
    lookup: Annotated[MedicineLookup, Depends(get_medicine_lookup)],
) -> MedicineResponse:
    info = lookup.find(name)
    if info is None:
        raise HTTPException(status_code=404, detail=f"Medicine {name} not found")
    return MedicineResponse.from_info(info)


async def _http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse({"message": exc.detail}, status_code=exc.status_code)


async def _validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    details = "; ".join(
        f"{'.'.join(str(p) for p in error['loc'])}: {error['msg']}" for error in exc.errors()
    )
    return JSONResponse({"message": f"Invalid request: {details}"}, status_code=400)


def run() -> None:
    """Entry point: serve the API with uvicorn."""
    settings = Settings()
    Log.configure(settings.log_level)
    uvicorn.run(create_app(settings), host=settings.api_host, port=settings.api_port)


if __name__ == "__main__":
    run()
