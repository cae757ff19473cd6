"""Application modules.

- admin: Admin JWT verification and the background sweep token
- agent: Support agent roster
- file: Uploaded documents and the cached file listing
- assignment: Assignment engine, service, API and Celery sweep
"""
