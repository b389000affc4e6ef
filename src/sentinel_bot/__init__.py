"""Sentinel Bot: Discord moderation with an auditable case ledger.

This package provides slash-command moderation for Discord servers, backed by
role-hierarchy authorization checks and a per-guild, case-numbered audit trail.
"""

__version__ = "0.1.0"
__license__ = "MIT"

from sentinel_bot.config import Settings

__all__ = ["Settings", "__version__"]
