"""
Decorators for FastAPI endpoint error handling and upload validation.

This module provides decorators to handle common patterns in PDF processing
endpoints, such as upload validation, processing timeouts and mapping the
extraction error taxonomy onto HTTP status codes.
"""

import logging
import asyncio
from functools import wraps
from typing import Callable, Optional
from fastapi import UploadFile, HTTPException, Request

from utils.validation import (
    validate_file_content,
    PdfValidationError,
    PageRenderError,
    ProcessingTimeoutError,
    MemoryLimitError,
    VALIDATION_CONSTANTS
)

logger = logging.getLogger(__name__)


def handle_pdf_processing(func: Callable) -> Callable:
    """
    Decorator to handle common PDF processing patterns:
    - File type validation
    - File content reading and validation
    - Processing timeout management
    - Standardized error handling

    The decorated function must accept `request: Request` and `file: UploadFile`
    as keyword arguments. The decorator stores in `request.state`:
    - `request.state.file_content`: Raw bytes of the uploaded PDF
    - `request.state.file_name`: Name of the uploaded file
    """
    @wraps(func)
    async def wrapper(*args, **kwargs):
        request: Request = kwargs.get('request')
        if not request:
            raise HTTPException(
                status_code=500,
                detail="Endpoint decorated with handle_pdf_processing must accept 'request: Request'"
            )

        file: UploadFile = kwargs.get('file')
        if not file:
            raise HTTPException(
                status_code=400,
                detail="File parameter is required"
            )

        processing_timeout: Optional[int] = kwargs.get('processing_timeout')
        timeout_seconds = processing_timeout or VALIDATION_CONSTANTS['MAX_PROCESSING_TIME_SECONDS']

        # Step 1: Validate file type
        if not file.filename or not file.filename.lower().endswith('.pdf'):
            raise HTTPException(
                status_code=400,
                detail="Only PDF files are supported"
            )

        # Step 2: Read and validate file content
        try:
            content = await file.read()
        except OSError as e:
            logger.error(f"Error reading uploaded file: {e}")
            raise HTTPException(
                status_code=400,
                detail=f"Error reading uploaded file: {str(e)}"
            )

        is_valid_content, content_error = validate_file_content(
            content,
            max_size_mb=VALIDATION_CONSTANTS['MAX_FILE_SIZE_MB']
        )
        if not is_valid_content:
            logger.warning(f"File content validation failed for {file.filename}: {content_error}")
            raise HTTPException(
                status_code=400,
                detail=content_error
            )

        request.state.file_content = content
        request.state.file_name = file.filename

        try:
            return await asyncio.wait_for(
                func(*args, **kwargs),
                timeout=timeout_seconds
            )
        except asyncio.TimeoutError:
            logger.error(f"Processing timed out after {timeout_seconds}s for {file.filename}")
            raise HTTPException(
                status_code=408,
                detail=f"PDF processing timed out after {timeout_seconds} seconds."
            )
        except PdfValidationError as e:
            logger.warning(f"PDF validation failed for {file.filename}: {e}")
            raise HTTPException(
                status_code=400,
                detail=f"PDF validation failed: {str(e)}"
            )
        except PageRenderError as e:
            logger.error(f"Page rendering failed for {file.filename}: {e}")
            raise HTTPException(
                status_code=422,
                detail=str(e)
            )
        except ProcessingTimeoutError as e:
            logger.error(f"Processing timeout for {file.filename}: {e}")
            raise HTTPException(
                status_code=408,
                detail=f"Processing timeout: {str(e)}"
            )
        except MemoryLimitError as e:
            logger.error(f"Memory limit exceeded for {file.filename}: {e}")
            raise HTTPException(
                status_code=507,
                detail=f"Memory limit exceeded: {str(e)}"
            )
        except HTTPException:
            raise
        except Exception as e:
            logger.exception(f"Unexpected error processing {file.filename}: {e}")
            raise HTTPException(
                status_code=500,
                detail=f"Internal server error during PDF processing: {str(e)}"
            )

    return wrapper
