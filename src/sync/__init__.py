"""Upstream sync of derived vitals to CARE.

Modules:
    scheduler      Rate-limited sync pass over recently active devices
    gate           Global / per-device rate-limit policies
    rounds         Daily-rounds payload derivation (pure)
    config_loader  rounds_config.yaml loading and validation
"""
