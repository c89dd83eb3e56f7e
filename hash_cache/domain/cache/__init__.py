"""
Cache Domain Layer

Entry envelope, options and repository contracts for the hash cache.
"""
