# Supabase table: user, auth.users
# This file documents the expected database schema
# Actual operations are handled through the record store in service.py
# Authentication is handled by Supabase Auth (auth.users table)

"""
Expected Supabase table structure:

user:
- id: uuid (primary key, references auth.users.id)
- created_at: timestamp (default: now())
- updated_at: timestamp (nullable)
- name: text (not null)
- email: text (unique, not null) - copied from auth.users on first sign-in
- profile_image_path: text (nullable) - {account_id}/users/{user_id}/profile-{ms}.{ext}
- hero_image_path: text (nullable) - {account_id}/users/{user_id}/hero-{ms}.{ext}

Note: Authentication data (password, tokens) is stored in auth.users table
managed by Supabase Auth. This table only stores profile information.
"""
