"""
Services module - metadata enrichment
"""

from explain_doctor.services.metadata_cache import MetadataCache
from explain_doctor.services.metadata_enricher import MetadataEnricher, fetch_table_metadata

__all__ = [
    "MetadataCache",
    "MetadataEnricher",
    "fetch_table_metadata",
]
