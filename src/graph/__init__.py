"""Declarative network graphs.

This package describes layered networks together with their training
configuration and validates them before serialization.
"""
