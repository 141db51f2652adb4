"""
API module boundary for CareLoop host shell.

Design intent:
- Keep HTTP handlers thin and typed.
- Delegate domain logic to privacy/evidence/note modules.
"""
