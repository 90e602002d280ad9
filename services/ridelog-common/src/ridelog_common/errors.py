"""Exceptions shared by the ingestion and retrieval services."""


class RidelogError(Exception):
    """Base class for pipeline errors."""


class FitDecodeError(RidelogError):
    """Raised when a FIT file cannot be decoded."""


class ArtifactError(RidelogError):
    """Raised when a converted artifact cannot be decompressed or parsed."""


class DocumentNotFoundError(RidelogError):
    """Raised when updating a document that does not exist."""

    def __init__(self, document_id: str):
        super().__init__(f"Document {document_id} does not exist")
        self.document_id = document_id


class BlobNotFoundError(RidelogError):
    """Raised when a blob does not exist in the bucket."""

    def __init__(self, path: str):
        super().__init__(f"Blob {path} does not exist")
        self.path = path
