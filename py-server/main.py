"""PDF Visual-Content Extractor Python Server"""

import asyncio
import logging
from typing import Optional

import uvicorn
from fastapi import FastAPI, UploadFile, File, Query, Form, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, StreamingResponse

from engine import EngineConfig
from extractors.page_extractor import extract_pages, slug_from_path, stream_extraction_events
from models.pdf_types import (
    ExtractPdfPagesResponse,
    PageRecordResponse,
    PdfPageExtractionOptions,
)
from utils.endpoint_decorators import handle_pdf_processing
from utils.logging_config import configure_logging

API_VERSION = "1.0.0"
ALLOWED_ORIGINS = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
]
DEFAULT_TIMEOUT_SECONDS = 300
MIN_TIMEOUT_SECONDS = 30
MAX_TIMEOUT_SECONDS = 600

logger = logging.getLogger("rich")

app = FastAPI(
    title="PDF Visual-Content Extractor API",
    description="Extract page rasters, text and standalone images from PDF books",
    version=API_VERSION
)
app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/")
async def root():
    """Service information"""
    return {
        "message": "PDF Visual-Content Extractor API",
        "version": API_VERSION,
        "features": [
            "Full page rasters at 2x (about 144 DPI)",
            "Raw page text",
            "Embedded raster images masked by their clip region",
            "Vector graphics grouped by overlap and clip, rendered to RGBA",
            "Streaming progress (NDJSON)"
        ]
    }


@app.get("/health")
async def health_check():
    """Health check with dependency verification"""
    try:
        import PIL
        import fitz
        import numpy
        import pydantic

        return {
            "status": "healthy",
            "version": API_VERSION,
            "features": {
                "pdf_rendering": "PyMuPDF",
                "text_extraction": "PyMuPDF",
                "image_compositing": "Pillow + numpy"
            },
            "dependencies": {
                "PIL": PIL.__version__,
                "PyMuPDF": fitz.VersionBind,
                "numpy": numpy.__version__,
                "pydantic": pydantic.VERSION
            }
        }
    except ImportError as e:
        return JSONResponse(
            status_code=503,
            content={
                "status": "unhealthy",
                "error": f"Missing dependency: {str(e)}"
            }
        )


def _engine_config(processing_timeout: Optional[int]) -> EngineConfig:
    return EngineConfig(timeout_seconds=processing_timeout or DEFAULT_TIMEOUT_SECONDS)


@app.post("/extract-pdf-pages", response_model=ExtractPdfPagesResponse)
@handle_pdf_processing
async def extract_pdf_pages(
    *,
    request: Request,
    file: UploadFile = File(...),
    start_page: int = Form(1, ge=1, description="First page to extract (1-based)"),
    end_page: Optional[int] = Form(None, ge=1, description="Last page to extract (inclusive)"),
    include_image_data: bool = Form(False, description="Embed base64 PNG data URIs in the response"),
    processing_timeout: Optional[int] = Query(DEFAULT_TIMEOUT_SECONDS, ge=MIN_TIMEOUT_SECONDS, le=MAX_TIMEOUT_SECONDS, description="Processing timeout in seconds")
):
    """
    Extract pages of a PDF.

    **Per page:**
    - `pageImage`: the full page raster (`pgNNN_im000`)
    - `rawText`: the page text
    - `images`: every embedded image or vector graphic large enough to stand on
      its own, masked by its clip region (`pgNNN_im001`, ...)

    **Returns:**
    - Page records in page order; PNG data only when `include_image_data` is set
    """
    options = PdfPageExtractionOptions(
        start_page=start_page,
        end_page=end_page,
        include_image_data=include_image_data
    )
    label = slug_from_path(request.state.file_name)

    logger.info(f"Extracting pages of '{label}' ({options.start_page} to {options.end_page or 'end'})")
    records = await asyncio.to_thread(
        extract_pages,
        request.state.file_content,
        start_page=options.start_page,
        end_page=options.end_page,
        label=label,
        config=_engine_config(processing_timeout),
    )

    return ExtractPdfPagesResponse(
        label=label,
        totalPages=len(records),
        pages=[PageRecordResponse.from_record(record, options.include_image_data) for record in records]
    )


@app.post("/extract-pdf-pages/stream")
@handle_pdf_processing
async def extract_pdf_pages_stream(
    *,
    request: Request,
    file: UploadFile = File(...),
    start_page: int = Form(1, ge=1, description="First page to extract (1-based)"),
    end_page: Optional[int] = Form(None, ge=1, description="Last page to extract (inclusive)"),
    processing_timeout: Optional[int] = Query(DEFAULT_TIMEOUT_SECONDS, ge=MIN_TIMEOUT_SECONDS, le=MAX_TIMEOUT_SECONDS, description="Processing timeout in seconds")
):
    """
    Extract pages of a PDF and stream progress as newline-delimited JSON.

    **Events:**
    - `{"type": "progress", "page", "totalPages", "label"}` once per page
    - `{"type": "complete", "label", "pageCount"}` at the end, or
    - `{"type": "error", "error", "detail"}` if extraction fails
    """
    label = slug_from_path(request.state.file_name)
    content = request.state.file_content
    config = _engine_config(processing_timeout)

    async def ndjson_events():
        async for event in stream_extraction_events(
            content,
            start_page=start_page,
            end_page=end_page,
            label=label,
            config=config,
        ):
            yield event.model_dump_json() + "\n"

    return StreamingResponse(ndjson_events(), media_type="application/x-ndjson")


def _find_free_port(start_port: int = 8000) -> int:
    """Find an available port starting from the given port"""
    import socket

    port = start_port
    max_port = start_port + 100

    while port < max_port:
        try:
            with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
                s.bind(('localhost', port))
                return port
        except OSError:
            port += 1

    return start_port


server_console = configure_logging()

if __name__ == "__main__":
    free_port = _find_free_port()
    server_console.print(f"[bold green]🚀 Starting server on http://localhost:{free_port}[/bold green]")

    try:
        uvicorn.run("main:app", host="0.0.0.0", port=free_port, reload=True, log_config=None)
    except KeyboardInterrupt:
        server_console.print("\n[bold yellow]🛑 Server stopped.[/bold yellow]")
