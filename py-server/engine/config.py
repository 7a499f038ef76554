"""
Configuration system for the extraction engine.

Provides structured configuration using dataclasses with clear defaults,
type safety, and construction from plain dicts (API payloads, CLI flags).
"""

from dataclasses import dataclass, fields
from typing import Optional, Dict, Any, List
import logging

logger = logging.getLogger(__name__)


def _filter_known_keys(cls, config: Dict[str, Any]) -> Dict[str, Any]:
    """Keep only keys that are dataclass fields of cls, warning about the rest."""
    valid_keys = {f.name for f in fields(cls)}
    filtered_config = {}
    for key, value in config.items():
        if key in valid_keys:
            filtered_config[key] = value
        else:
            logger.warning(f"Unknown {cls.__name__} key '{key}' will be ignored")
    return filtered_config


@dataclass
class ProcessorOptions:
    """
    Base class for processor-specific configuration options.

    All processor option classes inherit from this to provide a consistent
    interface and common functionality.
    """
    enabled: bool = True
    timeout_seconds: Optional[int] = None  # Override engine timeout if set

    def validate(self) -> bool:
        """
        Validate configuration options.

        Returns:
            True if configuration is valid, False otherwise
        """
        if self.timeout_seconds is not None and self.timeout_seconds < 0:
            logger.error("timeout_seconds must be non-negative")
            return False
        return True

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {f.name: getattr(self, f.name) for f in fields(self)}

    @classmethod
    def from_dict(cls, config: Optional[Dict[str, Any]]):
        """Create options from a dictionary, ignoring unknown keys."""
        return cls(**_filter_known_keys(cls, config or {}))


@dataclass
class ImageProcessorOptions(ProcessorOptions):
    """
    Configuration options for visual-content extraction.

    Controls which paints become shape candidates, when clips are ignored,
    and which groups are too small to keep.
    """
    # Groups smaller than this in both dimensions (points) are decoration
    min_vector_dimension: float = 20.0
    # A clip covering at least this share of the page counts as no clip
    page_level_clip_ratio: float = 0.9
    # Extra distance (points) still treated as overlap when grouping
    overlap_margin: float = 0.0

    include_vector_shapes: bool = True
    include_raster_shapes: bool = True
    pad_strokes: bool = True  # Grow stroked path bboxes by half the stroke width

    def validate(self) -> bool:
        if not super().validate():
            return False
        if self.min_vector_dimension < 0:
            logger.error("min_vector_dimension must be non-negative")
            return False
        if not 0.0 < self.page_level_clip_ratio <= 1.0:
            logger.error("page_level_clip_ratio must be in (0, 1]")
            return False
        if self.overlap_margin < 0:
            logger.error("overlap_margin must be non-negative")
            return False
        return True


@dataclass
class TextProcessorOptions(ProcessorOptions):
    """Configuration options for raw text extraction."""
    sort_blocks: bool = True  # Reading order (top-left to bottom-right) instead of stream order
    preserve_ligatures: bool = False  # Keep ligature glyphs instead of expanding them
    preserve_whitespace: bool = True  # Keep runs of spaces as in the content stream


@dataclass
class EngineConfig:
    """
    Central configuration for PDFEngine initialization.

    Provides all configuration options for engine behavior, resource management,
    and processor enablement.

    Example:
        >>> config = EngineConfig(raster_scale=2.0, timeout_seconds=600)
        >>> engine = PDFEngine(file_path, config=config)
    """

    # Rendering
    raster_scale: float = 2.0  # ~144 DPI for page rasters and extracted images

    # Processing options
    enable_text_processor: bool = True
    enable_image_processor: bool = True

    # Processor-specific options (as dictionaries for flexibility)
    text_processor_options: Optional[Dict[str, Any]] = None
    image_processor_options: Optional[Dict[str, Any]] = None

    # Performance
    timeout_seconds: int = 300
    max_file_size_mb: int = 200
    max_memory_mb: int = 2000

    # Validation
    validate_on_open: bool = True

    # Logging
    log_level: str = "INFO"

    def validate(self) -> bool:
        """
        Validate configuration values.

        Returns:
            True if all values are valid, False otherwise
        """
        if self.raster_scale <= 0:
            logger.error("raster_scale must be positive")
            return False

        if self.timeout_seconds < 1:
            logger.error("timeout_seconds must be at least 1 second")
            return False

        if self.max_file_size_mb < 1:
            logger.error("max_file_size_mb must be at least 1 MB")
            return False

        if self.max_memory_mb < 64:
            logger.error("max_memory_mb must be at least 64 MB")
            return False

        if self.log_level.upper() not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            logger.error(f"Unknown log_level '{self.log_level}'")
            return False

        if self.image_processor_options is not None:
            if not ImageProcessorOptions.from_dict(self.image_processor_options).validate():
                return False

        return True

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert configuration to dictionary.

        Useful for serialization, logging, and debugging.
        """
        return {f.name: getattr(self, f.name) for f in fields(self)}

    @classmethod
    def from_dict(cls, config: Dict[str, Any]) -> 'EngineConfig':
        """
        Create EngineConfig from dictionary.

        Unknown keys are ignored with a warning.

        Args:
            config: Dictionary of configuration values

        Returns:
            EngineConfig instance
        """
        return cls(**_filter_known_keys(cls, config))

    @classmethod
    def default(cls) -> 'EngineConfig':
        """Create configuration with default values."""
        return cls()

    def get_image_options(self) -> ImageProcessorOptions:
        return ImageProcessorOptions.from_dict(self.image_processor_options)

    def get_text_options(self) -> TextProcessorOptions:
        return TextProcessorOptions.from_dict(self.text_processor_options)

    def __repr__(self) -> str:
        """String representation for debugging."""
        return (
            f"EngineConfig("
            f"scale={self.raster_scale}, "
            f"text={self.enable_text_processor}, "
            f"image={self.enable_image_processor}, "
            f"timeout={self.timeout_seconds}s, "
            f"max_file={self.max_file_size_mb}MB)"
        )


@dataclass
class PageRange:
    """
    Represents a range of pages to process in a PDF document.

    Uses 1-based, inclusive page numbering.

    Example:
        >>> # Process first 10 pages
        >>> page_range = PageRange(start=1, end=10)
        >>>
        >>> # Process from page 5 to end of document
        >>> page_range = PageRange(start=5, end=None)
    """

    start: int = 1  # 1-based page number
    end: Optional[int] = None  # None means "to end of document"

    def __post_init__(self):
        """Validate page range on construction."""
        if self.start < 1:
            raise ValueError(f"start page must be >= 1, got {self.start}")

        if self.end is not None:
            if self.end < 1:
                raise ValueError(f"end page must be >= 1, got {self.end}")
            if self.end < self.start:
                raise ValueError(
                    f"end page ({self.end}) must be >= start page ({self.start})"
                )

    def to_page_numbers(self, total_pages: int) -> List[int]:
        """
        Convert range to explicit list of page numbers.

        Args:
            total_pages: Total number of pages in document

        Returns:
            List of 1-based page numbers to process (empty if the range
            starts past the end of the document)

        Example:
            >>> PageRange(start=2, end=5).to_page_numbers(10)
            [2, 3, 4, 5]
        """
        if total_pages < 1 or self.start > total_pages:
            return []

        end = total_pages if self.end is None else min(self.end, total_pages)
        return list(range(self.start, end + 1))

    def validate(self, total_pages: int) -> bool:
        """
        Validate that range is within document bounds.

        Args:
            total_pages: Total number of pages in document

        Returns:
            True if range is valid for document
        """
        if total_pages < 1:
            logger.error("total_pages must be >= 1")
            return False

        if self.start > total_pages:
            logger.error(
                f"start page {self.start} exceeds total pages {total_pages}"
            )
            return False

        if self.end is not None and self.end > total_pages:
            logger.error(
                f"end page {self.end} exceeds total pages {total_pages}"
            )
            return False

        return True

    @classmethod
    def all_pages(cls) -> 'PageRange':
        """Create range representing all pages in document."""
        return cls(start=1, end=None)

    @classmethod
    def single_page(cls, page_num: int) -> 'PageRange':
        """Create range for a single 1-based page."""
        return cls(start=page_num, end=page_num)

    def __repr__(self) -> str:
        """String representation for debugging."""
        if self.end is None:
            return f"PageRange({self.start}→end)"
        elif self.start == self.end:
            return f"PageRange(page {self.start})"
        else:
            return f"PageRange({self.start}→{self.end})"
