"""Dataset preparation pipeline.

This package streams raw label/pixel records, decodes them into
normalized examples, and tracks preparation progress for observers.
"""
