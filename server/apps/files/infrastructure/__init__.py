"""Infrastructure layer for files app.

This package contains integrations with external systems:
- Local filesystem blob store (upload and trash directories)
- Metadata store over the FileRecord model
- Stored-name and trash-name derivation

Keep infrastructure concerns separate from business logic.
"""
