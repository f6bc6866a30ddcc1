"""Data import and normalization.

This package reads key/value variable exports and normalizes the raw
column layout before pipeline steps run.
"""
