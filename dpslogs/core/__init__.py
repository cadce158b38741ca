"""
Core infrastructure: configuration, logging, Redis cache client and
database engine. No business logic lives here.
"""
