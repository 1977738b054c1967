# Middleware package init
"""
DevCamper Backend — Middleware Package
========================================

What:  Per-request concerns shared by every route.

Chain (outermost first, as registered in main.create_app):
    Request → [Request ID] → [Access Log] → [GZip] → [CORS] → Route Handler

    The request ID is assigned before the access log runs, so every access
    line and every log record emitted during the request carries it.
"""
