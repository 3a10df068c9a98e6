"""Collaborators in the CARE clinical record system.

Modules:
    client     httpx client for the CARE API
    auth       Asset-scoped JWT headers
    directory  Device → asset → consultation/patient resolution
    sink       Daily-rounds submission
"""
