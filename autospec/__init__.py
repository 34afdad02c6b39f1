"""
autospec: spec-driven development workflows for CLI coding agents

Drives an external coding agent through the constitution, specify, clarify,
plan, tasks, checklist, analyze and implement phases, validating the
artifact each phase produces and bounding retries across runs.
"""

__version__ = "0.1.0"

from autospec.core.exceptions import AutospecError

__all__ = ["AutospecError", "__version__"]
