"""Tests for the dojo adapters."""
