"""Core logic of the pomodoro sync engine.

This package is organized by responsibility:
- remote: Remote account store contract and HTTP transport
- sync: Divergence detection, merge coordination and sync triggers
- backup: Backup document export, validation and restore
- tracking: Auth, connectivity, settings and session services
"""

__all__: list[str] = []
