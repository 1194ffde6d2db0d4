"""Platform models, repositories and money helpers."""
