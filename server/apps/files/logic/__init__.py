"""Business logic layer for files app.

This package contains all business logic for file operations:
- Upload, listing, fetch and soft delete
- Trash reconciliation after interrupted deletes

All business logic should be implemented here, separate from
models (data layer) and infrastructure (external systems).
"""
