"""
Event Budget Dashboard - Source Package

Budget planning for one or more events that share a pool of common costs.

DESIGN PRINCIPLES:
1. Every figure is derived from current state, never stored
2. State changes replace whole values, never edit in place
3. Reject bad input before touching state; report, don't raise
4. Destructive actions need explicit confirmation
5. Every step must be auditable
"""

__version__ = "1.0.0"
__author__ = "Event Budget Team"
