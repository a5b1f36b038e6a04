"""clib-build - Dependency-aware build orchestration for clib packages.

This package locates clib package manifests, walks their dependency trees
and runs each package's makefile at most once, in bounded parallel batches.
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
