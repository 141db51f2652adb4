"""
HTTP clients for external collaborators (transcription, note generation, redaction).
"""
