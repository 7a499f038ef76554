"""
PDF Input Validation and Resource Management Utilities
Validation of PDF sources, resource monitoring, and the extraction error taxonomy.
"""

import os
import tempfile
import time
import psutil
from typing import Optional, Tuple, Dict, Any, Union
import logging

logger = logging.getLogger(__name__)

PdfSource = Union[str, os.PathLike, bytes]

# Validation constants
VALIDATION_CONSTANTS = {
    'PDF_SIGNATURE': b'%PDF',
    'MAX_FILE_SIZE_MB': 200,
    'MAX_PROCESSING_TIME_SECONDS': 300,  # 5 minutes
    'MAX_MEMORY_USAGE_MB': 2000,
    'MIN_AVAILABLE_MEMORY_MB': 100,
    'SUPPORTED_PDF_VERSIONS': ['1.0', '1.1', '1.2', '1.3', '1.4', '1.5', '1.6', '1.7', '2.0'],
}


class PdfValidationError(Exception):
    """Invalid, unreadable or encrypted PDF, or invalid engine configuration"""
    pass


class PageRenderError(Exception):
    """A page could not be rasterized; aborts the whole document"""

    def __init__(self, page_number: int, message: str):
        super().__init__(f"Failed to render page {page_number}: {message}")
        self.page_number = page_number


class ProcessingTimeoutError(Exception):
    """Custom exception for processing timeouts"""
    pass


class MemoryLimitError(Exception):
    """Custom exception for memory limit exceeded"""
    pass


class ExtractionCancelledError(Exception):
    """Extraction was cancelled at a page boundary"""
    pass


def _check_header(header: bytes) -> Tuple[bool, Optional[str]]:
    if len(header) < 4:
        return False, "File too small to be a valid PDF"

    if not header.startswith(VALIDATION_CONSTANTS['PDF_SIGNATURE']):
        return False, f"Invalid PDF signature. Expected {VALIDATION_CONSTANTS['PDF_SIGNATURE']}, got {header[:4]}"

    if len(header) >= 8:
        try:
            version_str = header[5:8].decode('ascii')
            if version_str not in VALIDATION_CONSTANTS['SUPPORTED_PDF_VERSIONS']:
                # Many PDFs work even with unsupported versions
                logger.warning(f"Unsupported PDF version: {version_str}")
        except UnicodeDecodeError:
            logger.warning("Could not decode PDF version")

    return True, None


def validate_pdf_signature(file_path: Union[str, os.PathLike]) -> Tuple[bool, Optional[str]]:
    """
    Validate PDF file signature (magic bytes) and version

    Args:
        file_path: Path to the PDF file

    Returns:
        Tuple of (is_valid, error_message)
    """
    try:
        with open(file_path, 'rb') as f:
            return _check_header(f.read(8))
    except FileNotFoundError:
        return False, f"File not found: {file_path}"
    except PermissionError:
        return False, f"Permission denied accessing file: {file_path}"
    except OSError as e:
        return False, f"Error validating PDF signature: {str(e)}"


def validate_file_size(file_path: Union[str, os.PathLike], max_size_mb: Optional[int] = None) -> Tuple[bool, Optional[str]]:
    """
    Validate file size limits

    Args:
        file_path: Path to the file
        max_size_mb: Maximum file size in MB (uses default if None)

    Returns:
        Tuple of (is_valid, error_message)
    """
    if max_size_mb is None:
        max_size_mb = VALIDATION_CONSTANTS['MAX_FILE_SIZE_MB']

    try:
        size_mb = os.path.getsize(file_path) / (1024 * 1024)
    except FileNotFoundError:
        return False, f"File not found: {file_path}"
    except OSError as e:
        return False, f"Error checking file size: {str(e)}"

    if size_mb > max_size_mb:
        return False, f"File too large: {size_mb:.1f}MB (max: {max_size_mb}MB)"

    logger.debug(f"File size validation passed: {size_mb:.1f}MB")
    return True, None


def validate_file_content(content: bytes, max_size_mb: Optional[int] = None) -> Tuple[bool, Optional[str]]:
    """
    Validate in-memory PDF content (uploads, byte sources)

    Args:
        content: Raw file content bytes
        max_size_mb: Maximum file size in MB

    Returns:
        Tuple of (is_valid, error_message)
    """
    if max_size_mb is None:
        max_size_mb = VALIDATION_CONSTANTS['MAX_FILE_SIZE_MB']

    size_mb = len(content) / (1024 * 1024)
    if size_mb > max_size_mb:
        return False, f"File too large: {size_mb:.1f}MB (max: {max_size_mb}MB)"

    return _check_header(content[:8])


def validate_processing_environment() -> Tuple[bool, Optional[str]]:
    """
    Validate that the system has sufficient resources for PDF processing

    Returns:
        Tuple of (is_valid, error_message)
    """
    min_mb = VALIDATION_CONSTANTS['MIN_AVAILABLE_MEMORY_MB']
    try:
        memory = psutil.virtual_memory()
        available_mb = memory.available / (1024 * 1024)
        if available_mb < min_mb:
            return False, f"Insufficient memory available: {available_mb:.1f}MB (need at least {min_mb}MB)"

        # Page directories are staged next to their final location, but a
        # nearly full temp dir is a good early signal of a full disk
        temp_dir = tempfile.gettempdir()
        free_mb = psutil.disk_usage(temp_dir).free / (1024 * 1024)
        if free_mb < min_mb:
            return False, f"Insufficient disk space in {temp_dir}: {free_mb:.1f}MB (need at least {min_mb}MB)"

        logger.debug(f"Environment validation passed: {available_mb:.1f}MB memory, {free_mb:.1f}MB disk")
        return True, None

    except (psutil.Error, OSError) as e:
        return False, f"Error checking system resources: {str(e)}"


class ResourceManager:
    """
    Context manager for tracking and limiting resource usage during extraction.

    check_limits() is called at every page boundary.
    """

    def __init__(self, max_memory_mb: Optional[int] = None, max_time_seconds: Optional[int] = None):
        self.max_memory_mb = max_memory_mb or VALIDATION_CONSTANTS['MAX_MEMORY_USAGE_MB']
        self.max_time_seconds = max_time_seconds or VALIDATION_CONSTANTS['MAX_PROCESSING_TIME_SECONDS']
        self.start_time = None
        self.start_memory = None

    def __enter__(self):
        self.start_time = time.time()
        self.start_memory = psutil.Process().memory_info().rss / (1024 * 1024)
        logger.debug(f"ResourceManager: Starting processing with {self.start_memory:.1f}MB memory")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self.start_time:
            processing_time = time.time() - self.start_time
            current_memory = psutil.Process().memory_info().rss / (1024 * 1024)
            memory_delta = current_memory - self.start_memory if self.start_memory else 0

            logger.info(f"ResourceManager: Processing completed in {processing_time:.2f}s, "
                        f"memory usage: {memory_delta:+.1f}MB")
        return False

    def check_limits(self):
        """
        Check if resource limits have been exceeded

        Raises:
            ProcessingTimeoutError: If the time limit is spent
            MemoryLimitError: If process RSS exceeds the memory limit
        """
        current_time = time.time()

        if self.start_time and (current_time - self.start_time) > self.max_time_seconds:
            raise ProcessingTimeoutError(
                f"Processing timeout: {current_time - self.start_time:.1f}s "
                f"(max: {self.max_time_seconds}s)"
            )

        try:
            current_memory = psutil.Process().memory_info().rss / (1024 * 1024)
        except psutil.Error as e:
            logger.warning(f"Could not check memory usage: {e}")
            return

        if current_memory > self.max_memory_mb:
            raise MemoryLimitError(
                f"Memory limit exceeded: {current_memory:.1f}MB "
                f"(max: {self.max_memory_mb}MB)"
            )


def comprehensive_pdf_validation(source: PdfSource, max_size_mb: Optional[int] = None) -> Dict[str, Any]:
    """
    Perform comprehensive validation of a PDF path or in-memory PDF

    Args:
        source: Path to the PDF file, or its bytes
        max_size_mb: Maximum file size in MB

    Returns:
        Dictionary with validation results
    """
    results = {
        'is_valid': True,
        'errors': [],
        'warnings': [],
        'file_info': {}
    }

    if isinstance(source, (bytes, bytearray)):
        content_valid, content_error = validate_file_content(bytes(source), max_size_mb)
        if not content_valid:
            results['is_valid'] = False
            results['errors'].append(content_error)
        else:
            results['file_info']['size_mb'] = round(len(source) / (1024 * 1024), 2)
    else:
        if not os.path.exists(source):
            results['is_valid'] = False
            results['errors'].append(f"File not found: {source}")
            return results

        size_valid, size_error = validate_file_size(source, max_size_mb)
        if not size_valid:
            results['is_valid'] = False
            results['errors'].append(size_error)
        else:
            results['file_info']['size_mb'] = round(os.path.getsize(source) / (1024 * 1024), 2)

        sig_valid, sig_error = validate_pdf_signature(source)
        if not sig_valid:
            results['is_valid'] = False
            results['errors'].append(sig_error)

    env_valid, env_error = validate_processing_environment()
    if not env_valid:
        # Low resources degrade throughput but do not make the input invalid
        results['warnings'].append(env_error)

    return results


__all__ = [
    'validate_pdf_signature',
    'validate_file_size',
    'validate_file_content',
    'validate_processing_environment',
    'comprehensive_pdf_validation',
    'ResourceManager',
    'PdfSource',
    'PdfValidationError',
    'PageRenderError',
    'ProcessingTimeoutError',
    'MemoryLimitError',
    'ExtractionCancelledError',
    'VALIDATION_CONSTANTS'
]
