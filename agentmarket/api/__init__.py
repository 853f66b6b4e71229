"""
Backend client and web front-end routing.
"""
