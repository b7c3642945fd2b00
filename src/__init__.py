"""
Personal Tracker - Source Package

The derived-metrics and state-mutation core of a personal habit and
finance tracker. Views are thin CRUD layers that call into this package.

DESIGN PRINCIPLES:
1. The record store is the only source of truth
2. Derived figures are recomputed from records, never stored
3. Refused operations change nothing
4. Every mutation is auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Personal Tracker Team"
