"""
Core modules for Usage Cost.

This package contains the price table and the usage aggregation engine.
"""
