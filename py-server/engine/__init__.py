"""
PDF Processing Engine

Core engine module for coordinating PDF operations.
Contains the PDFEngine class and its text and image processors.
"""

__version__ = "1.0.0"

from engine.pdf_engine import PDFEngine
from engine.config import (
    EngineConfig,
    ImageProcessorOptions,
    PageRange,
    ProcessorOptions,
    TextProcessorOptions,
)
from engine.base_processor import BaseProcessor, ProcessorRegistry
from engine.text_processor import TextProcessor
from engine.image_processor import ImageProcessor

__all__ = [
    'PDFEngine',
    'EngineConfig',
    'ProcessorOptions',
    'PageRange',
    'BaseProcessor',
    'ProcessorRegistry',
    'TextProcessor',
    'TextProcessorOptions',
    'ImageProcessor',
    'ImageProcessorOptions',
]
