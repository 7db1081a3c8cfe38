"""
Utility modules.
"""

from propdesk.utils.timezone import utc_now, to_utc

__all__ = ["utc_now", "to_utc"]
