"""Sidecar that reports the step containers of a pipeline pod to the CD controller."""

__version__ = "0.1.0"
