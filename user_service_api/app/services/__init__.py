"""
Service layer.

Each service owns the transaction boundaries for a domain and
delegates the SQL to the matching repository, so API handlers never
touch a connection directly.
"""
