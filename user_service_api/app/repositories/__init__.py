"""
Data access layer.

Each repository encapsulates the SQL for one entity.  Repositories are
bound to a connection handed in by the service layer and never commit
or roll back themselves; transaction boundaries belong to the services.
"""
