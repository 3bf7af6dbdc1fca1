"""Terminal presentation of consultation results."""

from .summary_screen import render_summary

__all__ = ["render_summary"]
