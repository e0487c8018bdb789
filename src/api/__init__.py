"""
API Module
---------
Provides RESTful API endpoints for campsites using FastAPI.
Features include:
- Searching public campsites by text, rating, photos and distance
- Creating, reading, updating and deleting owned campsites
- Submitting, listing, editing, deleting and flagging reviews
"""
