"""Build orchestration module.

This module handles:
- The build ledger (at-most-once per package location)
- Running package makefiles
- Batch scheduling of dependencies
- Recursive orchestration of a dependency tree
"""

from clib_build.builds.ledger import BuildLedger
from clib_build.builds.orchestrator import Orchestrator

__all__ = ["BuildLedger", "Orchestrator"]
