"""Storage layer.

This package decodes CSV rows into typed records, keeps them in a
key-addressable container, and rewrites the backing file on commit.
"""
