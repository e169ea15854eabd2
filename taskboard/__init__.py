"""Multi-tenant task board backed by Supabase."""

__version__ = "0.1.0"
