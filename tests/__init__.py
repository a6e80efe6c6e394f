"""Test package for Reflex Arena.

Core modules are driven by a fake clock so every run is deterministic. The
pygame smoke tests use SDL's dummy drivers so no window opens. Run
``pytest`` from the project root.
"""
