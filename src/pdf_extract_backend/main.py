from __future__ import annotations

import logging
from typing import Dict, List

from fastapi import Depends, FastAPI, File, Request, UploadFile
from fastapi.responses import FileResponse, JSONResponse
from starlette.concurrency import run_in_threadpool

from .configuration import get_settings, uploads_root
from .errors import ExtractionError, StorageFailure, UploadTooLarge, ValidationFailure
from .middleware import install_middleware
from .models import DeleteResponse, ErrorResponse, TextResponse, UploadResponse, UploadSummary
from .processor import UploadProcessor
from .store import ResultStore
from .utils import new_upload_id

PDF_CONTENT_TYPE = "application/pdf"
READ_CHUNK_SIZE = 1024 * 1024

settings = get_settings()

logging.basicConfig(format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logging.getLogger("pdf_extract_backend").setLevel(str(settings.log_level).upper())
logger = logging.getLogger(__name__)

app = FastAPI(title="PDF Extract API", version="0.1.0")

install_middleware(app, settings.max_upload_bytes, settings.cors_origins)

result_store = ResultStore(uploads_root(settings))
upload_processor = UploadProcessor(result_store.root)


def get_store() -> ResultStore:
    return result_store


def get_processor() -> UploadProcessor:
    return upload_processor


def get_max_upload_bytes() -> int:
    return int(settings.max_upload_bytes)


@app.exception_handler(ExtractionError)
async def handle_extraction_error(request: Request, exc: ExtractionError) -> JSONResponse:
    if isinstance(exc, StorageFailure):
        message = "Failed to store or read upload data"
    elif exc.status_code >= 500:
        message = f"Failed to process PDF: {exc.message}"
    else:
        message = exc.message
    return JSONResponse(status_code=exc.status_code, content=ErrorResponse(error=message).model_dump(by_alias=True))


@app.get("/healthz")
def healthcheck() -> Dict[str, str]:
    return {"status": "ok"}


async def _read_upload(file: UploadFile, limit: int) -> bytes:
    buffer = bytearray()
    while chunk := await file.read(READ_CHUNK_SIZE):
        buffer.extend(chunk)
        if len(buffer) > limit:
            await file.close()
            raise UploadTooLarge(f"Upload exceeds the {limit} byte limit")
    await file.close()
    return bytes(buffer)


@app.post("/api/upload", response_model=UploadResponse)
async def upload_pdf(
    file: UploadFile = File(...),
    processor: UploadProcessor = Depends(get_processor),
    max_upload_bytes: int = Depends(get_max_upload_bytes),
) -> UploadResponse:
    data = await _read_upload(file, max_upload_bytes)
    if not data:
        raise ValidationFailure("Please select a PDF file to upload")

    content_type = (file.content_type or "").split(";")[0].strip().lower()
    if content_type != PDF_CONTENT_TYPE:
        raise ValidationFailure("Only PDF files are allowed")

    upload_id = new_upload_id()
    # Parsing is blocking; keep it off the event loop
    result = await run_in_threadpool(processor.process, data, upload_id)

    return UploadResponse(
        id=result.id,
        original_file_name=file.filename or "",
        extracted_text=result.extracted_text,
        image_count=result.image_count,
        images=result.image_names,
    )


@app.get("/api/uploads", response_model=List[UploadSummary])
def list_uploads(store: ResultStore = Depends(get_store)) -> List[UploadSummary]:
    return store.list_uploads()


@app.get("/api/uploads/{upload_id}/text", response_model=TextResponse)
def get_text(upload_id: str, store: ResultStore = Depends(get_store)) -> TextResponse:
    return TextResponse(text=store.get_text(upload_id))


@app.get("/api/uploads/{upload_id}/images/{image_name}")
def get_image(upload_id: str, image_name: str, store: ResultStore = Depends(get_store)) -> FileResponse:
    image = store.get_image(upload_id, image_name)
    return FileResponse(
        image.path,
        media_type=image.media_type,
        filename=image.filename,
        content_disposition_type="inline",
    )


@app.get("/api/uploads/{upload_id}/pdf")
def get_pdf(upload_id: str, store: ResultStore = Depends(get_store)) -> FileResponse:
    original = store.get_original(upload_id)
    return FileResponse(
        original.path,
        media_type=original.media_type,
        filename=original.filename,
        content_disposition_type="inline",
    )


@app.delete("/api/uploads/{upload_id}", response_model=DeleteResponse)
def delete_upload(upload_id: str, store: ResultStore = Depends(get_store)) -> DeleteResponse:
    store.delete(upload_id)
    return DeleteResponse(message="Upload deleted successfully")


def run() -> None:
    import uvicorn

    uvicorn.run("pdf_extract_backend.main:app", host=settings.host, port=int(settings.port))
