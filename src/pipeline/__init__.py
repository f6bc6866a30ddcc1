"""Ordered step pipeline.

This package defines the step contract, the concrete import steps,
the YAML step catalog, and the runner that sequences them.
"""
