"""File discovery and the descriptors handed to the organizer core."""

from .discovery import DirectoryScanner, category_for_extension
from .models import FileDescriptor

__all__ = ["DirectoryScanner", "FileDescriptor", "category_for_extension"]
