"""
Privacy module boundary for CareLoop.

Design intent:
- Detect identifying text locally before anything leaves the device.
- Keep masking and outbound gating pure so previews match real sends.
"""
