"""
app/mappers package marker.
"""

from app.mappers.period_normalizer import PeriodNormalizer, normalize_period
from app.mappers.schema_mapper import MappingResolution, SchemaMapper
from app.mappers.format_detector import FormatDetector
from app.mappers.customer_ids import CustomerIdGenerator
from app.mappers.record_extractor import RecordExtractor

__all__ = [
    "CustomerIdGenerator",
    "FormatDetector",
    "MappingResolution",
    "PeriodNormalizer",
    "RecordExtractor",
    "SchemaMapper",
    "normalize_period",
]
