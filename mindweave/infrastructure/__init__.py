"""Database pool, schema, settings and rate limiting"""
