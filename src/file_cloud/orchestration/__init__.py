"""Session wiring between navigation, uploads and a provider."""
