"""
Processor base class and registry.

Processors hang off an open PDFEngine and do one kind of per-page work
(text, images). The engine registers them after the document opens and
releases them, newest first, when it closes.
"""

from abc import ABC
from typing import Dict, List, Optional, TYPE_CHECKING
import logging

if TYPE_CHECKING:
    from engine.pdf_engine import PDFEngine

logger = logging.getLogger(__name__)


class BaseProcessor(ABC):
    """
    Base class for per-page processors.

    Subclasses call `_require_ready()` at the top of every page operation so
    a processor can only run while its engine holds an open document.
    """

    def __init__(self, engine: 'PDFEngine'):
        """
        Args:
            engine: PDFEngine instance that owns this processor
        """
        self.engine = engine
        self._initialized = False

    def initialize(self) -> None:
        """Acquire per-document resources. Called once the document is open."""
        if self._initialized:
            logger.warning(f"{self.__class__.__name__} already initialized")
            return
        self._initialized = True
        logger.debug(f"{self.__class__.__name__} ready for {self.engine.name}")

    def cleanup(self) -> None:
        """Release per-document resources. Idempotent."""
        self._initialized = False

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    def validate_state(self) -> bool:
        """True when the processor is initialized and its engine is open."""
        return self._initialized and self.engine is not None and self.engine.is_open

    def _require_ready(self) -> None:
        if not self.validate_state():
            raise RuntimeError(f"{self.__class__.__name__} used outside an open engine")

    def __repr__(self) -> str:
        status = "ready" if self.validate_state() else "idle"
        return f"{self.__class__.__name__}({status})"


class ProcessorRegistry:
    """Named processors of one engine, kept in registration order."""

    def __init__(self):
        self._processors: Dict[str, BaseProcessor] = {}

    def register(self, name: str, processor: BaseProcessor) -> None:
        if name in self._processors:
            logger.warning(f"Processor '{name}' already registered, replacing")
        self._processors[name] = processor

    def get(self, name: str) -> Optional[BaseProcessor]:
        return self._processors.get(name)

    def initialize_all(self) -> None:
        """Initialize processors in registration order; the first failure propagates."""
        for name, processor in self._processors.items():
            try:
                processor.initialize()
            except Exception as e:
                logger.error(f"Failed to initialize processor '{name}': {e}")
                raise

    def cleanup_all(self) -> None:
        """Clean up processors newest first and forget them."""
        for name in reversed(list(self._processors)):
            try:
                self._processors[name].cleanup()
            except Exception as e:
                # Keep cleaning up the remaining processors
                logger.warning(f"Error cleaning up processor '{name}': {e}")
        self._processors.clear()

    @property
    def processor_names(self) -> List[str]:
        return list(self._processors)

    def __repr__(self) -> str:
        return f"ProcessorRegistry({self.processor_names})"
