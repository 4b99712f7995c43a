"""Test suite for scenery."""
