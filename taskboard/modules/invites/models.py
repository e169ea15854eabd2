# Supabase table: account_invite
# This file documents the expected database schema
# Actual operations are handled through the record store in service.py

"""
Expected Supabase table structure:

account_invite:
- id: uuid (primary key)
- created_at: timestamp (default: now())
- account_id: uuid (foreign key to account.id, not null)
- invited_by_user_id: uuid (foreign key to user.id, nullable)
- code: text (unique, not null) - shared in the accept link
- email: text (nullable) - when set only this email may accept
- role: text (not null, default: 'default') - values: guest, default, manager, admin
- expires_at: timestamp (nullable)
- accepted_at: timestamp (nullable)
- accepted_by_user_id: uuid (foreign key to user.id, nullable)
- revoked_at: timestamp (nullable)
"""
