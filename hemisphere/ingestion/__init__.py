"""
Ingestion Layer

Source records in, validated InsightFragments out.

MUST NOT: merge, score or link anything. That is the core's job.
"""

from .extractor import ExtractionReport, FragmentExtractor, SkippedRecord

__all__ = ['ExtractionReport', 'FragmentExtractor', 'SkippedRecord']
