"""Docker image manifest handling

Parse, inspect and convert image manifests between the schema 2 and the
legacy schema 1 formats.
"""

__version__ = "0.1.0"
