"""
Reports - city-scoped citizen reports, gated by the ``reports`` module.
"""
