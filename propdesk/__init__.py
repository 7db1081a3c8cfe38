"""Propdesk: role-based access control for the propfirm trading platform."""

__version__ = "0.1.0"
