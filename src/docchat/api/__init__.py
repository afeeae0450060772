"""HTTP routers."""
from __future__ import annotations

from .routes import document_router, excel_router, web_router

__all__ = ["document_router", "excel_router", "web_router"]
