"""Reusable patterns shared by the discount vertical.

Each module demonstrates a self-contained pattern: a pure-function rules
engine and dataclass-based domain configuration.
"""
