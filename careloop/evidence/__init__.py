"""
Evidence module boundary for CareLoop.

Design intent:
- Model collaborator evidence as an explicit tagged variant.
- Resolve snippets only against the transcript snapshot used for generation.
- Keep verification bookkeeping conservative and consistent.
"""
