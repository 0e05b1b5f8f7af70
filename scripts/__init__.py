"""
Scripts Module

Utility scripts for local database setup.

Available scripts:
    - seed_users.py: Creates one demo user per role

Usage:
    python -m scripts.seed_users --tokens
"""
