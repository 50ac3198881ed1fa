"""Test suite for the uplink binding."""
