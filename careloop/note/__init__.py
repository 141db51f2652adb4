"""
Structured note module boundary for CareLoop.

Design intent:
- Hold generated SOAP notes together with their generation snapshot.
- Turn plan text into discrete patient tasks.
"""
