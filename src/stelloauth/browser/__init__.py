"""Headless browser plumbing for the browser login mode."""

from .driver import PortalBrowser

__all__ = ["PortalBrowser"]
