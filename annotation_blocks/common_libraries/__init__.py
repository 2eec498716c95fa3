"""Shared libraries for the annotation blocks Lambda functions."""
