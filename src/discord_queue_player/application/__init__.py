"""
Application Layer

Use cases and orchestration on top of the domain layer.

Structure:
- commands/: write operations (play, skip/advance, clear, remove, loop, disconnect)
- queries/: read operations (queue snapshot, now playing)
- services/: the per-guild session controller, its watchdog and the session manager
- interfaces/: ports implemented by infrastructure adapters
"""
