"""Integration tests that exercise real git repositories in temporary directories."""
