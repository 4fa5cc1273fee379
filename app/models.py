# models.py
"""
Table definitions for the Supabase project.

The application talks to these tables through PostgREST, so the classes are
never used for ORM sessions; they describe the schema and render the DDL the
project is provisioned with.
"""
from sqlalchemy import (
    ARRAY,
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UUID,
    func,
    text,
)
from sqlalchemy.dialects import postgresql
from sqlalchemy.orm import declarative_base
from sqlalchemy.schema import CreateTable

Base = declarative_base()


class Profile(Base):
    __tablename__ = "profiles"
    id = Column(UUID(as_uuid=True), primary_key=True)
    email = Column(String, nullable=False)
    full_name = Column(String, nullable=True)
    anonymous_uploads = Column(Boolean, nullable=False, server_default=text("false"))
    email_notifications = Column(Boolean, nullable=False, server_default=text("true"))
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class Note(Base):
    __tablename__ = "notes"
    __table_args__ = (
        CheckConstraint("file_type in ('pdf', 'image')", name="notes_file_type_check"),
        CheckConstraint("download_count >= 0", name="notes_download_count_check"),
        CheckConstraint("view_count >= 0", name="notes_view_count_check"),
    )
    id = Column(UUID(as_uuid=True), primary_key=True, server_default=func.gen_random_uuid())
    title = Column(String(255), nullable=False)
    course = Column(String, nullable=False)
    lecturer = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    file_path = Column(String, nullable=False, unique=True)
    file_type = Column(String(10), nullable=False)
    tags = Column(ARRAY(String), nullable=False, server_default=text("'{}'"))
    # Soft reference: deleting a profile does not cascade to its notes.
    uploader_id = Column(UUID(as_uuid=True), ForeignKey("profiles.id", ondelete="NO ACTION"), nullable=False)
    uploader_name = Column(String, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    download_count = Column(Integer, nullable=False, server_default=text("0"))
    view_count = Column(Integer, nullable=False, server_default=text("0"))


COUNTER_PROCEDURES = {
    "increment_view_count": "view_count",
    "increment_download_count": "download_count",
}

_PROCEDURE_TEMPLATE = """CREATE OR REPLACE FUNCTION {name}(note_id uuid)
RETURNS void
LANGUAGE sql
SECURITY DEFINER
AS $$
  UPDATE notes SET {column} = {column} + 1 WHERE id = note_id;
$$;"""


def render_procedures_sql() -> str:
    """Single-statement increments used by the counter operations."""
    return "\n\n".join(
        _PROCEDURE_TEMPLATE.format(name=name, column=column)
        for name, column in COUNTER_PROCEDURES.items()
    )


def render_schema_sql() -> str:
    dialect = postgresql.dialect()
    statements = [
        str(CreateTable(table).compile(dialect=dialect)).strip() + ";"
        for table in (Profile.__table__, Note.__table__)
    ]
    statements.append(render_procedures_sql())
    return "\n\n".join(statements) + "\n"


if __name__ == "__main__":
    print(render_schema_sql())
