"""Annotation blocks backend: blocks, tasks, images, annotations and labels."""

__version__ = "0.1.0"
