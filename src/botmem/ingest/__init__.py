"""
Ingest module - conversation text to structured memory.

Components:
- schema: Extraction prompt, wire schema and strict parser
- pipeline: Backend invocation and fan-out to the four stores
"""

from botmem.ingest.pipeline import ExtractionPipeline, IngestConfig
from botmem.ingest.schema import ExtractionResult

__all__ = ["ExtractionPipeline", "ExtractionResult", "IngestConfig"]
