"""Model artifact serving components.

This package serializes graph descriptions into model artifacts and
hands them to a model compiler.
"""
