"""
Data Models Module
----------------
Contains Pydantic models for request validation and response serialization.
Responses use the camelCase field names clients already consume.
"""
