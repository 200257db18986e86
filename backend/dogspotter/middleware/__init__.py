"""
Dog Spotter Backend — Middleware Package
=========================================

Middleware Chain (order matters):
    Request → [Rate Limit] → [Request ID] → [Access Log] → [GZip] → [CORS] → Route

    1. Rate limit first, so rejected clients cost nothing downstream
    2. Request ID before the access log, which prints it
    3. Responses travel back through the chain in reverse order
"""
