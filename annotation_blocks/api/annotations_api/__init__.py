"""Annotation blocks REST API: blocks, labels, tasks, images, annotations and users."""
