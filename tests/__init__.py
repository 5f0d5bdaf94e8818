"""Test package for the file converter."""
