"""Test helpers for elm-test-runner."""
