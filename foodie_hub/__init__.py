"""
                Foodie Hub

Food ordering backend: restaurant catalog, customers, and orders placed
atomically against live menu prices with a tracked status lifecycle.

Version: 1.0.0
"""

__version__ = "1.0.0"
