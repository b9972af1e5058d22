"""Kanflow: task boards with dense, transactional ordering."""

__version__ = "1.0.0"
