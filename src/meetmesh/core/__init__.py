"""Core building blocks shared across meetmesh."""
