"""Formula installer (manifest-driven, verify-first).

Core design goals:
- Declarative manifests (YAML or a Homebrew formula subset)
- Checksum verification strictly before any filesystem mutation
- Stage-then-promote writes; a failed run never leaves a half-installed binary
- One run per package at a time
- Centralized logging
"""

__version__ = "0.1.0"

__all__ = ["__version__"]
