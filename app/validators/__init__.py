"""
app/validators package marker.
"""

from app.validators.csv_validator import CSVRowValidator
from app.validators.mapping_validator import MappingErrorDetail, MappingValidator, SchemaMappingError

__all__ = [
    "CSVRowValidator",
    "MappingErrorDetail",
    "MappingValidator",
    "SchemaMappingError",
]
