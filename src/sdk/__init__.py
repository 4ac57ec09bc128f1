"""High-level SDK layer.

This package ties dataset preparation, model serialization, and model
compilation together behind one session object.
"""
