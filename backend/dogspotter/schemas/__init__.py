"""
Dog Spotter Backend — Pydantic Request/Response Schemas
========================================================

API contracts are kept apart from the ORM models so the responses expose
exactly the fields the clients need (never password hashes, and never the
owner's identity on map markers).
"""
