"""Site request approval components.

Provides:
- Settings loaded from .env
- Structured logging
- The request workflow engine and its collaborators
- A small CLI surface
"""
