"""Test suite for kvguard."""
