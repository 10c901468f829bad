"""Services package for the streaming mindmap.

This package contains:
- Canvas collaborator interface (services.canvas)
- Streaming session orchestration (services.streaming)
- Infrastructure services (logging)

Import directly from subpackages:
    from services.streaming import open_session
    from services.infrastructure.logging_config import setup_logging
"""

__all__ = []
