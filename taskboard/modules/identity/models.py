# Identity is derived from the user, account and account_membership tables.
# See users/models.py and accounts/models.py for their structure.

"""
Resolution rules:
- user.id equals the Supabase auth user id
- the current account is the membership with the greatest last_accessed_at
- a first sign-in creates the user row, an account whose id equals the user id,
  and an admin membership linking the two
"""
