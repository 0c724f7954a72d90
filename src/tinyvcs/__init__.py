"""TinyVCS - a minimal version control engine.

TinyVCS tracks file content across a staging area and a linear commit
history stored in a hidden ``.tinyvcs/`` directory, using content-addressed
storage for file blobs.
"""

__version__ = "0.1.0"
__author__ = "TinyVCS Contributors"

__all__ = ["__version__", "__author__"]
