"""Core (UI-agnostic) plan dashboard logic.

This package contains:
- CSV upload decoding (bytes -> raw rows -> plan records)
- plan type classification and OTC amount extraction
- carrier facets and filter normalization
- page compute functions (JSON-serializable payloads)
- chart helpers (Altair -> Vega-Lite spec dict)
"""
