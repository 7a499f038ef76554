"""
PDF Processing Components

Stateful processors of the visual-content pipeline:

- PaintOpWalker: Enumerates paint operations from a page's drawing program
- ShapeCollector: Resolves paint operations into shape candidates
- Compositor: Rasterizes shape groups into RGBA PNGs

These differ from utils/ which contains pure, stateless functions.
"""

from processors.paint_walker import PaintOpWalker, enumerate_paint_ops
from processors.shape_collector import ShapeCollector
from processors.compositor import Compositor

__version__ = "1.0.0"
__all__ = [
    'PaintOpWalker',
    'enumerate_paint_ops',
    'ShapeCollector',
    'Compositor',
]
