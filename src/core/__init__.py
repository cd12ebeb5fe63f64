"""Core domain package for pathfinder.

Core owns the canonical contact set, filtering, and operation coordination
without any Supabase, n8n, or UI-specific code, keeping the logic portable.
"""
