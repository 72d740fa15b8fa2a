"""
DJ Rank - catalogue and tier-rank performers against a scoring rubric.
"""

__version__ = "2.0.0"
