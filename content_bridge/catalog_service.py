"""
Field catalog lookup over an injected schema source.

Declarative type definitions are preferred; sample documents are probed when
a type has no definition. Failures to infer a catalog are expected (a new
workspace has no content yet) and yield an empty result instead of raising.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional, Protocol

from content_bridge.errors import CatalogInferenceFailure
from content_bridge.inference import SampleFieldProber, infer_schema_types
from content_bridge.models import TYPE_KEY, FieldCatalog, SchemaType
from content_bridge.schema_extractor import DeclarativeSchemaExtractor

logger = logging.getLogger(__name__)

SYSTEM_ID_PREFIX = "_."


class SchemaSource(Protocol):
    """Where sample documents and type definitions come from"""

    def fetch_documents(self, type_name: Optional[str] = None) -> List[Dict[str, Any]]:
        ...

    def fetch_type_definitions(self) -> List[Dict[str, Any]]:
        ...


class InMemorySchemaSource:
    """Schema source backed by lists already loaded by the application"""

    def __init__(self, documents: Iterable[Dict[str, Any]] = (),
                 type_definitions: Iterable[Dict[str, Any]] = ()):
        self.documents = list(documents)
        self.type_definitions = list(type_definitions)

    def fetch_documents(self, type_name: Optional[str] = None) -> List[Dict[str, Any]]:
        documents = [
            document for document in self.documents
            if not str(document.get("_id", "")).startswith(SYSTEM_ID_PREFIX)
        ]
        if type_name is not None:
            documents = [document for document in documents if document.get(TYPE_KEY) == type_name]
        return documents

    def fetch_type_definitions(self) -> List[Dict[str, Any]]:
        return list(self.type_definitions)


class CatalogService:
    """Resolves field catalogs for one request"""

    def __init__(self, source: SchemaSource, prober: Optional[SampleFieldProber] = None,
                 max_depth: Optional[int] = None):
        self.source = source
        self.prober = prober or SampleFieldProber()
        self.max_depth = max_depth

    def _extractor(self) -> DeclarativeSchemaExtractor:
        return DeclarativeSchemaExtractor(self.source.fetch_type_definitions(), self.max_depth)

    def get_schema_types(self) -> List[SchemaType]:
        try:
            schema_types = self._extractor().extract_all()
            if schema_types:
                return schema_types
            return infer_schema_types(self.source.fetch_documents(), self.prober)
        except (CatalogInferenceFailure, ValueError) as e:
            logger.error(f"Failed to infer schema types: {e}")
            return []

    def get_fields(self, type_name: str) -> FieldCatalog:
        try:
            extractor = self._extractor()
            if type_name in extractor.document_type_names():
                return extractor.extract(type_name)

            catalog = self.prober.probe_many(self.source.fetch_documents(type_name), type_name)
        except (CatalogInferenceFailure, ValueError) as e:
            logger.error(f"Failed to infer fields for {type_name!r}: {e}")
            return FieldCatalog(type_name)

        if not catalog:
            logger.info(f"No documents of type {type_name!r} to infer fields from")
        return catalog

    def get_field_records(self, type_name: str) -> List[Dict[str, Any]]:
        """Catalog records for a configuration UI"""
        return self.get_fields(type_name).to_records()
