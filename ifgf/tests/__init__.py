"""
IFGF Test Suite

Tests for the Interpolated Factored Green's Function implementation.
"""
