"""Column types that map to native Postgres types and degrade on other dialects."""
from sqlalchemy import JSON, String
from sqlalchemy.dialects import postgresql

JSONType = JSON().with_variant(postgresql.JSONB(), "postgresql")
TagList = JSON().with_variant(postgresql.ARRAY(String(64)), "postgresql")
