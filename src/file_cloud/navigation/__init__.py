"""Folder navigation history and breadcrumb state."""
