"""Microsoft Graph collaborator for OneDrive listing and uploads."""
