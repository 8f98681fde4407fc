"""Cluster-facing implementations of the engine's collaborator protocols."""
