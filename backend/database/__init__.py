# PostgreSQL connection pool, schema and repositories
