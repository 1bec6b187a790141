import os
from logging.config import fileConfig
from typing import Any, Literal

from alembic import context
from alembic.autogenerate import rewriter
from alembic.autogenerate.api import AutogenContext
from alembic.operations import ops
from alembic.runtime.environment import EnvironmentContext
from sqlalchemy import Column, Enum, TypeDecorator, engine_from_config, pool

from tipjar_common.core.config_service import ConfigService
from tipjar_common.logging.setup_logging import setup_logging
from tipjar_db import models  # noqa: F401
from tipjar_db.db import Base, to_sync_url

config = context.config

if os.getenv("ALEMBIC_USE_DEFAULT_LOGGING", "false").lower() in {"true", "1", "t", "yes"} and config.config_file_name is not None:
    fileConfig(config.config_file_name)
else:
    setup_logging()

target_metadata = Base.metadata

db_url = ConfigService().get_database_url()
if not db_url:
    raise ValueError("Database URL not found in configuration")

config.set_main_option("sqlalchemy.url", to_sync_url(db_url))

writer = rewriter.Rewriter()


@writer.rewrites(ops.CreateTableOp)
def order_columns(
    context: EnvironmentContext,
    revision: tuple[str, ...],
    op: ops.CreateTableOp,
) -> ops.CreateTableOp:
    """Orders ID first and the audit columns immediately after."""
    special_names = {"id": -100, "user_id": -100, "created_at": -99, "updated_at": -98}
    cols_by_key: list[tuple[int, Column[Any]]] = [
        (
            special_names.get(col.key, index) if isinstance(col, Column) else 2000,
            col.copy(),  # type: ignore[attr-defined]
        )
        for index, col in enumerate(op.columns)
    ]
    columns = [col for _, col in sorted(cols_by_key, key=lambda entry: entry[0])]
    return ops.CreateTableOp(
        op.table_name,
        columns,
        schema=op.schema,
        _namespace_metadata=op._namespace_metadata,  # type: ignore[attr-defined]
        **op.kw,
    )


def render_item(type_: str, obj: Any, autogen_context: AutogenContext) -> str | Literal[False]:
    """Render type decorators as their impl and enums as non-native for cross-database migrations."""
    if type_ == "type" and isinstance(obj, TypeDecorator):
        return f"sa.{obj.impl!r}"

    if type_ == "type" and isinstance(obj, Enum):
        values = list(obj.enums)
        if not values:
            return False
        enum_name = obj.name or (obj.enum_class.__name__.lower() if obj.enum_class is not None else "enum")
        values_clause = ", ".join(repr(v) for v in values)
        return f"sa.Enum({values_clause}, name='{enum_name}', native_enum=False)"

    return False


def run_migrations_offline() -> None:
    raise RuntimeError("Offline mode is not supported")


def run_migrations_online() -> None:
    connectable = engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )

    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            render_item=render_item,
            process_revision_directives=writer,
        )

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
