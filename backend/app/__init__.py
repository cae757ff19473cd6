"""Document Desk admin backend.

Distributes paid customer files across support agents and serves the
admin dashboard.

Modules:
    - core: Configuration, database, cache, logging, tracing, metrics, Celery setup
    - modules.admin: Admin identity verification
    - modules.agent: Support agent roster
    - modules.file: Uploaded files and the admin file listing
    - modules.assignment: Workload-balanced file assignment
"""

__version__ = "0.1.0"
