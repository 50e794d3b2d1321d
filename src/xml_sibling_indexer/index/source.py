"""Document collaborator contract.

The indexer never owns documents. An editor (or any host) exposes them
through a DocumentSource; InMemoryDocumentSource is a simple host used by the
command-line tool and by tests.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Union

from xml_sibling_indexer.tokenization import LineIndex


class DocumentUnavailableError(Exception):
    """Raised by a DocumentSource when a document no longer exists."""

    def __init__(self, document_key: str, reason: Optional[str] = None) -> None:
        message = f"Document unavailable: {document_key}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)
        self.document_key = document_key
        self.reason = reason


class DocumentSource(ABC):
    """Abstract provider of document text, versions and positions."""

    @abstractmethod
    def get_text(self, document_key: str) -> str:
        """Current full text of the document."""

    @abstractmethod
    def get_version(self, document_key: str) -> int:
        """Content version, strictly increasing per edit."""

    @abstractmethod
    def position_at(self, document_key: str, offset: int) -> int:
        """Zero-based line containing ``offset``."""

    def get_language_id(self, document_key: str) -> Optional[str]:
        """Language of the document; ``None`` when the host does not know."""
        return None


@dataclass
class _Document:
    text: str
    version: int
    language_id: str
    lines: LineIndex


class InMemoryDocumentSource(DocumentSource):
    """DocumentSource holding documents in a dictionary.

    Examples:
        >>> source = InMemoryDocumentSource()
        >>> source.open("file:///a.xml", "<a><b/></a>")
        1
        >>> source.edit("file:///a.xml", "<a><b/><b/></a>")
        2
    """

    def __init__(self) -> None:
        self._documents: Dict[str, _Document] = {}

    def open(self, document_key: str, text: str, language_id: str = "xml") -> int:
        """Open (or reopen) a document at version 1."""
        self._documents[document_key] = _Document(text, 1, language_id, LineIndex(text))
        return 1

    def open_file(self, path: Union[str, Path], language_id: Optional[str] = None) -> str:
        """Open a file from disk, keyed by its resolved URI.

        The language is taken from the file suffix unless given.
        """
        file_path = Path(path).resolve()
        text = file_path.read_text(encoding="utf-8", errors="replace")
        key = file_path.as_uri()
        self.open(key, text, language_id or file_path.suffix.lstrip(".").lower())
        return key

    def edit(self, document_key: str, text: str) -> int:
        """Replace a document's text and advance its version."""
        document = self._require(document_key)
        document.text = text
        document.version += 1
        document.lines = LineIndex(text)
        return document.version

    def close(self, document_key: str) -> None:
        self._documents.pop(document_key, None)

    def keys(self) -> List[str]:
        return list(self._documents)

    def get_text(self, document_key: str) -> str:
        return self._require(document_key).text

    def get_version(self, document_key: str) -> int:
        return self._require(document_key).version

    def position_at(self, document_key: str, offset: int) -> int:
        document = self._require(document_key)
        if offset < 0 or offset > len(document.text):
            raise ValueError(f"Offset {offset} outside document of length {len(document.text)}")
        return document.lines.line_at(offset)

    def get_language_id(self, document_key: str) -> Optional[str]:
        return self._require(document_key).language_id

    def _require(self, document_key: str) -> _Document:
        try:
            return self._documents[document_key]
        except KeyError:
            raise DocumentUnavailableError(document_key, "not open") from None
