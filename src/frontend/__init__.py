"""Textual dashboard for pathfinder."""
