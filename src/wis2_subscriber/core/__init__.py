"""
Core library for the subscriber.

Domain-agnostic building blocks:
    - download: aiohttp streaming fetch with atomic writes
    - errors: exception hierarchy and classification
    - logging: structured JSON/console logging
    - security: URL validation, download path safety, TLS contexts
"""
