"""Upload progress tracking, chunking and transports."""
