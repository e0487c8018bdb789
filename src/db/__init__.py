"""
Database Module
-------------
Handles database connections, ORM models, and database operations.
Uses SQLAlchemy and defines the schema for campsites, reviews, review flags
and the anonymous rating ledger.
"""
