"""
Shutterbox Backend — Middleware Package
=========================================

What:  Cross-cutting concerns applied to every request, plus the access guard.

Middleware Chain (order matters!):
    Request → [Rate Limit] → [Request ID] → [Logging] → [GZip] → [CORS] → Route

    1. Rate Limit FIRST: Reject abusive requests (and login brute force)
       before any processing
    2. Request ID: Correlation ID for logs and error bodies
    3. Logging: One access-log line per request, with the request ID

The access guard is not in this chain. It is a route dependency
(access_guard.py) because each route declares its own role requirement.
"""
