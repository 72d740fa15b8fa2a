"""
Core Package - DJ Rank
djrank/core/__init__.py

Exceptions, logging setup, admin security and dependency wiring.
"""
