"""Cloud storage browsing core: folder navigation history and upload progress tracking."""

__version__ = "0.1.0"
