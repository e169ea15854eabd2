# Supabase Auth
# This module uses Supabase's built-in authentication system
# No custom tables are required - Supabase Auth handles:
# - User registration (auth.users table)
# - User login and session management
# - JWT token generation and validation
# - Password hashing and security

"""
Supabase Auth provides:
- auth.sign_up() - Register new users
- auth.sign_in_with_password() - Authenticate users
- auth.get_user() - Get current user from JWT token
- auth.sign_out() - Logout users
- auth.on_auth_state_change() - Follow sign-in, sign-out and token refresh events

Registration metadata used by the identity resolver on first sign-in:
- name: display name for the public.user row (falls back to the email local part)
- accountName: name of the default account (falls back to the email local part)
"""
