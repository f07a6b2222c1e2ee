"""
Stewardly - Source Package

A personal budgeting core: distribution plans split income across
spending categories, and each calendar month can be locked so that its
reports keep showing the plan that was in force when it was closed.

DESIGN PRINCIPLES:
1. Historical truth is append-only (snapshot first, then lock)
2. The read path never crashes on bad stored data
3. No exception crosses the public service boundary
4. Every lock transition is auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Stewardly Team"
