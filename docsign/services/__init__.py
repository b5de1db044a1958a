"""
Services Package

Export composition and the file-save collaborators it hands output to.
"""

from docsign.services.export_service import ExportService
from docsign.services.file_saver import FileSaver, DirectoryFileSaver, InMemoryFileSaver

__all__ = [
    "ExportService",
    "FileSaver",
    "DirectoryFileSaver",
    "InMemoryFileSaver",
]
