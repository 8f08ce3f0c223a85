"""Crowbar registry — shared role records and software repository trust.

This package provides the two registries the orchestration layer relies on:
- Roles: versioned configuration records shared between barclamps
- Repositories: the merged per-platform catalog of install sources and
  the checks that decide whether a repository can be trusted
"""

__version__ = "0.3.0"
