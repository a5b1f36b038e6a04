"""Package resolution module.

This module handles:
- Manifest schema validation (clib.json / package.json)
- Manifest lookup in package directories
- Slug parsing and remote manifest fetch
- PackageNode construction
"""

from clib_build.packages.resolver import PackageNode, PackageResolver, Resolver

__all__ = ["PackageNode", "PackageResolver", "Resolver"]
