# Middleware package init
"""
NoteNest Backend — Middleware Package
======================================

Middleware Chain (order matters):
    Request → [Rate Limit] → [Request ID] → [Logging] → [GZip] → [CORS] → Route Handler

    1. Rate Limit first: abusive requests are rejected before any processing
    2. Request ID: correlation id for logs and the X-Request-ID header
    3. Logging: access log line with status and duration

WebSocket connections bypass these (BaseHTTPMiddleware handles HTTP only).
"""
