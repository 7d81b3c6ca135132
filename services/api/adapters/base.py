"""
Storage adapter interface for document metadata.
Defines the contract that all metadata backends must implement.
"""

from typing import Protocol, List, Dict, Any, Optional

from models import Document


class StorageAdapter(Protocol):
    """
    Protocol defining the interface for all document metadata stores.

    This allows swapping between the JSON file store and SQLite
    without changing the router or signing workflow code.

    Adapters return `Document` models. Missing rows are reported as None/False,
    never as exceptions; the caller decides whether that is a 404.
    """

    def create_document(
        self,
        *,
        original_name: str,
        file_path: str,
        uploaded_by: str,
        size: int = 0,
        mime_type: str = "application/pdf",
    ) -> Document:
        """
        Create a new pending document.

        Returns:
            The stored Document, with generated id and timestamps.
        """
        ...

    def get_document(self, doc_id: str) -> Optional[Document]:
        """
        Fetch a document by id.

        Returns:
            Document, or None if not found.
        """
        ...

    def get_document_by_signed_path(self, signed_file_path: str) -> Optional[Document]:
        """
        Resolve the document whose latest signed output is `signed_file_path`.
        """
        ...

    def list_documents(self, uploaded_by: str) -> List[Document]:
        """
        Return the documents owned by `uploaded_by`, newest first (by created_at).
        """
        ...

    def update_document(self, doc_id: str, updates: Dict[str, Any]) -> Optional[Document]:
        """
        Update fields on a document.

        Implementations should:
            - overwrite only the provided keys
            - never change id, uploaded_by or created_at
            - bump 'updated_at' internally

        Returns:
            The updated Document, or None if not found.
        """
        ...

    def delete_document(self, doc_id: str) -> bool:
        """
        Delete a document row. Returns False if it did not exist.
        """
        ...
