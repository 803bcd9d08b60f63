"""State/store layer.

This package is the single source of truth for tracked entities: decoded CoT
events are merged into the marker table here, and only here.
"""
