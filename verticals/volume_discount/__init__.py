"""Volume discount vertical: checkout discount function.

Demonstrates the patterns working together in one domain:
- Frozen dataclass settings and domain types
- Pure-function rules engine gating the discount
- Fail-open configuration resolver
- Template engine renderers for current and legacy host formats
- FastAPI router with shop-scoped configuration store
"""
