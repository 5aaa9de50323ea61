"""seedguard: cloud-init seeding and lockdown for first boot.

Core design goals:
- Grade-driven: secured images only take gadget cloud-init config
- Fail closed on anything unparseable or unknown
- Marker files are the only persisted state
- Centralized logging
"""

__all__ = []
