# Supabase tables: account, account_membership
# This file documents the expected database schema
# Actual operations are handled through the record store in service.py

"""
Expected Supabase table structure:

account:
- id: uuid (primary key) - the first account of a user shares the user's id
- created_at: timestamp (default: now())
- updated_at: timestamp (nullable)
- name: text (not null)
- logo_image_path: text (nullable) - path in the 'accounts' storage bucket
- hero_image_path: text (nullable) - path in the 'accounts' storage bucket

account_membership:
- id: uuid (primary key, default: gen_random_uuid())
- created_at: timestamp (default: now())
- last_accessed_at: timestamp (not null) - the most recent one is the current account
- user_id: uuid (foreign key to user.id, not null)
- account_id: uuid (foreign key to account.id, not null)
- role: text (not null, default: 'default') - values: guest, default, manager, admin
- unique constraint on (user_id, account_id)
"""
