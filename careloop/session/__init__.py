"""
Clinician session shell for CareLoop.

Design intent:
- Orchestrate gate, collaborator call, evidence linking and persistence per visit.
- Pin every generated note to the exact payload that left the device.
- Keep the audit trail metadata-only.
"""

from .clinician import ClinicianSession, NoteReview, ScanResult, TaskDelivery

__all__ = ["ClinicianSession", "NoteReview", "ScanResult", "TaskDelivery"]
