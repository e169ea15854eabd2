# Supabase table: task
# This file documents the expected database schema
# Actual operations are handled through the record store in service.py

"""
Expected Supabase table structure:

task:
- id: uuid (primary key)
- created_at: timestamp (default: now())
- updated_at: timestamp (not null)
- account_id: uuid (foreign key to account.id, not null)
- created_by_user_id: uuid (foreign key to user.id, nullable)
- updated_by_user_id: uuid (foreign key to user.id, nullable)
- title: text (not null)
- status: text (not null, default: 'active') - values: active, completed, archived
- description_markdown: text (not null, default: '')
- completed_at: timestamp (nullable)
- archived_at: timestamp (nullable)

Unsaved edits are kept per user in the local store under the task_draft table
(key {user_id}:{task_id}); they never reach Supabase.
"""
