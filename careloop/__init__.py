"""
CareLoop clinical-note core package.

Design intent:
- Keep privacy gating and evidence provenance pure and deterministic.
- Keep domain modules (privacy/evidence/note) independent from transport.
- Reach transcription, note generation and server-side redaction only through typed contracts.
"""
