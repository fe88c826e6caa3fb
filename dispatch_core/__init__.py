"""Core (UI-agnostic) dispatcher dashboard logic.

This package contains:
- the mock record store (records -> pandas)
- filter / sort normalization and engines
- selection and dashboard state transitions
- page compute functions (JSON-serializable payloads)
- chart helpers (Altair -> Vega-Lite spec dict)
"""
