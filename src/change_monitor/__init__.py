"""
Change monitor: watches a directory tree, records file changes and pushes
them to connected clients in real time.
"""

__version__ = "0.1.0"
