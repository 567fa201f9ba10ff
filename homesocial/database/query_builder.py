ALLOWED_TABLES = ("profiles", "listings", "media", "comments", "threads", "thread_members", "messages")

# Tables that carry an updated_at column maintained on every UPDATE/upsert
TIMESTAMPED_TABLES = ("profiles", "listings")


def _check_table(table_name: str) -> None:
    if table_name not in ALLOWED_TABLES:
        raise ValueError(f"Invalid table: {table_name}")


class QueryBuilder:
    @staticmethod
    def build_insert_query(
        data: dict, table_name: str, returning: str | None = "*"
    ) -> tuple[str, list]:
        """
        Build INSERT query and values from dict.
        Does NOT execute - returns query and values for the caller to execute.

        Args:
            data: Dictionary of column names and values
            table_name: Name of the table to insert into
            returning: Column list for the RETURNING clause, or None to omit it

        Returns:
            Tuple of (query_string, values_list)

        Example:
            query, values = QueryBuilder.build_insert_query({"body": "Hi"}, "comments")
            row = await conn.fetchrow(query, *values)
        """
        _check_table(table_name)
        if not data:
            raise ValueError("Cannot build INSERT without columns")

        columns = ", ".join(data.keys())
        placeholders = ", ".join([f"${i+1}" for i in range(len(data))])
        values = list(data.values())

        query = f"INSERT INTO {table_name} ({columns}) VALUES ({placeholders})"
        if returning:
            query += f" RETURNING {returning}"

        return query, values

    @staticmethod
    def build_update_query(
        data: dict,
        table_name: str,
        where: dict,
        returning: str | None = None,
    ) -> tuple[str, list]:
        """
        Build UPDATE query and values from dict.
        Does NOT execute - returns query and values for the caller to execute.

        Every key of `where` becomes an equality filter joined with AND, so an
        ownership check can ride along with the primary key:

            query, values = QueryBuilder.build_update_query(
                {"title": "Lake House"}, "listings", {"id": listing_id, "owner_id": uid}
            )
            result = await conn.execute(query, *values)   # "UPDATE 0" when filtered out
        """
        _check_table(table_name)
        if not where:
            raise ValueError("Refusing to build UPDATE without a WHERE clause")

        set_clauses = []
        values = []
        for key, value in data.items():
            values.append(value)
            set_clauses.append(f"{key} = ${len(values)}")
        if table_name in TIMESTAMPED_TABLES:
            set_clauses.append("updated_at = NOW()")
        if not set_clauses:
            raise ValueError("Cannot build UPDATE without columns")

        where_clauses = []
        for key, value in where.items():
            values.append(value)
            where_clauses.append(f"{key} = ${len(values)}")

        query = f"UPDATE {table_name} SET {', '.join(set_clauses)} WHERE {' AND '.join(where_clauses)}"
        if returning:
            query += f" RETURNING {returning}"

        return query, values

    @staticmethod
    def build_upsert_query(
        data: dict, table_name: str, conflict_column: str, returning: str | None = "*"
    ) -> tuple[str, list]:
        """
        Build INSERT ... ON CONFLICT DO UPDATE from dict.

        All columns except the conflict column are overwritten on conflict.
        """
        _check_table(table_name)
        if conflict_column not in data:
            raise ValueError(f"Upsert data must include conflict column {conflict_column}")

        query, values = QueryBuilder.build_insert_query(data, table_name, returning=None)
        updates = [f"{key} = EXCLUDED.{key}" for key in data if key != conflict_column]
        if table_name in TIMESTAMPED_TABLES:
            updates.append("updated_at = NOW()")
        if updates:
            query += f" ON CONFLICT ({conflict_column}) DO UPDATE SET {', '.join(updates)}"
        else:
            query += f" ON CONFLICT ({conflict_column}) DO NOTHING"
        if returning:
            query += f" RETURNING {returning}"

        return query, values
