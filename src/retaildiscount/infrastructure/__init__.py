"""Infrastructure layer: SQLite persistence and the store.

Repositories translate between SQLAlchemy Core rows and domain objects.
Nothing here imports from services, commands, or output.
"""
