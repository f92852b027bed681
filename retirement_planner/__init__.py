"""
Retirement Planner - Source Package

Projects a user's retirement savings shortfall or surplus from salary,
EPF/PRS contributions and fixed market-return assumptions.

DESIGN PRINCIPLES:
1. The projection engine is pure and deterministic
2. Fail early, fail visibly: bad input never reaches the engine
3. No silent corrections
4. One plan per user; every calculation is auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Retirement Planner Team"
