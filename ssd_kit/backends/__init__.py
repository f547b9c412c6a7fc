"""
Optional inference backends for ssd_kit.

Backends are kept in a separate module so the post-processing pipeline stays
lightweight and can be used without installing inference runtimes.
"""

from __future__ import annotations

__all__ = []
