from __future__ import annotations

from typing import Iterable

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from .models import ErrorResponse

# Room for multipart boundaries and part headers on top of the file itself
MULTIPART_OVERHEAD_BYTES = 64 * 1024


class MaxUploadSizeMiddleware(BaseHTTPMiddleware):
    """
    Reject request bodies that cannot possibly hold an acceptable upload.

    The ceiling is max_bytes plus a multipart allowance, checked against the
    declared Content-Length before the body is read. The exact per-file limit
    is enforced by the upload handler, which also covers chunked bodies.
    """

    def __init__(self, app, max_bytes: int, overhead_bytes: int = MULTIPART_OVERHEAD_BYTES) -> None:
        super().__init__(app)
        self.max_bytes = max_bytes
        self.max_request_bytes = max_bytes + overhead_bytes

    async def dispatch(self, request: Request, call_next):
        if request.method in ("POST", "PUT", "PATCH"):
            declared = request.headers.get("content-length")
            if declared is not None:
                try:
                    length = int(declared)
                except ValueError:
                    return JSONResponse(
                        status_code=400,
                        content=ErrorResponse(error="Invalid Content-Length header").model_dump(by_alias=True),
                    )
                if length > self.max_request_bytes:
                    return JSONResponse(
                        status_code=413,
                        content=ErrorResponse(error=f"Upload exceeds the {self.max_bytes} byte limit").model_dump(by_alias=True),
                    )
        return await call_next(request)


def install_middleware(app: FastAPI, max_upload_bytes: int, cors_origins: Iterable[str]) -> None:
    """
    Add the size limit and CORS layers.

    The last middleware added is the outermost, so CORS goes last and its
    headers are present on 413 responses too.
    """
    app.add_middleware(MaxUploadSizeMiddleware, max_bytes=max_upload_bytes)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(cors_origins),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
