"""Explicit site request workflow.

This package introduces first-class types for:
- The request status state machine
- The error taxonomy surfaced to submitters and administrators
- Notification message templates
- The workflow engine that ties persistence, provisioning and email together

Import from the submodules; `store` depends on `state_machine`, and the engine
depends on `store`.
"""

__all__: list[str] = []
