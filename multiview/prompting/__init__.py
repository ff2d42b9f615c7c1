"""Prompt construction package for describe and per-view generation calls."""
