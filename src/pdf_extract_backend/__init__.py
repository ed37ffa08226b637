"""
PDF Extract Backend - REST API for PDF text and image extraction

This package provides a FastAPI-based web service that accepts PDF uploads,
extracts their text and embedded raster images, and keeps the results in a
directory per upload. It enables:

- PDF document uploads and validation
- Text extraction in visual reading order
- Embedded image extraction with deterministic file names
- Listing, fetching and deleting stored results

The backend is a thin orchestration layer over PyMuPDF and the filesystem;
the directory tree under the uploads root is the only persistence.

Key Components:
    - main: FastAPI application and HTTP endpoint definitions
    - processor: Upload processing into a result directory
    - store: Filesystem result store and path safety
    - extractor: PDF extraction capability backed by PyMuPDF
    - models: Pydantic models for responses
    - configuration: Settings loading and merging logic
    - errors: Failure taxonomy mapped to HTTP statuses
    - utils: Identifier and path utilities

Usage:
    Run the API server with:
        uvicorn pdf_extract_backend.main:app --reload --host 0.0.0.0 --port 8000

    Or use the installed script:
        pdf-extract-backend

On-disk layout:
    {uploads_dir}/{id}/original.pdf
    {uploads_dir}/{id}/extracted_text.txt
    {uploads_dir}/{id}/images/page{N}_image{M}.{ext}
"""
