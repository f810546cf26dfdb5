"""Tests for bootstrap-machine."""
