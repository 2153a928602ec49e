"""Infrastructure adapters: database engine, ORM models, repositories."""
