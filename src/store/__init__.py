"""Artifact storage layer.

This package persists numbered intermediate snapshots and final results
together with their JSON manifests.
"""
