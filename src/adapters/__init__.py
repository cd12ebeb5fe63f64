"""Adapters that implement the core ports against Supabase, n8n and pandas."""
