"""Free-form syntax guidance injected into generation requests, per backend."""

from __future__ import annotations

from typing import Dict

from .models import BackendId

_POSTGRESQL = """
## PostgreSQL syntax
- Identifiers: double-quotes ("column_name", "schema"."table")
- Rounding: ROUND(column::numeric, 2) or ROUND(CAST(column AS numeric), 2)
- Casting: CAST(value AS INTEGER) or value::INTEGER
- Case-insensitive matching: "name" ILIKE '%john%'
- Dates: CURRENT_DATE, NOW(), DATE_TRUNC('month', ts), EXTRACT(YEAR FROM d), d + INTERVAL '1 day'
- Strings: CONCAT() or ||, LOWER(), UPPER(), TRIM(), SUBSTRING(s FROM a FOR b)
- Window functions, CTEs (WITH), ARRAY_AGG(), jsonb operators are supported
- Booleans are TRUE/FALSE
"""

_MYSQL = """
## MySQL syntax
- Identifiers: backticks (`column_name`, `schema`.`table`)
- Rounding: ROUND(column, 2)
- Casting: CAST(value AS SIGNED), CAST(d AS CHAR)
- LIKE is case-insensitive by default: `name` LIKE '%john%'
- Dates: CURDATE(), NOW(), DATE_FORMAT(d, '%Y-%m-%d'), YEAR(d), MONTH(d), DATEDIFF(a, b), DATE_ADD(d, INTERVAL 1 DAY)
- Window functions and CTEs require MySQL 8.0+
- Row cap: LIMIT n or LIMIT n OFFSET m
"""

_MARIADB = """
## MariaDB syntax
- Identifiers: backticks (`column_name`, `schema`.`table`)
- Rounding: ROUND(column, 2); casting: CAST(value AS SIGNED), CAST(d AS CHAR)
- LIKE is case-insensitive by default
- Dates: CURDATE(), NOW(), DATE_FORMAT(d, '%Y-%m-%d'), YEAR(d), DATEDIFF(a, b)
- Window functions (10.2+), CTEs, JSON_EXTRACT()/JSON_VALUE()
"""

_DATABRICKS = """
## Databricks / Spark SQL syntax
- Three-level namespace: `catalog`.`schema`.`table` when a catalog is known
- Identifiers: backticks for every identifier
- Casting: CAST(value AS INT | BIGINT | STRING)
- Case-insensitive matching: LOWER(`column`) LIKE LOWER('%abc%')
- Dates: CURRENT_DATE(), DATE_TRUNC('day', ts), YEAR(d), DATEDIFF(a, b), DATE_ADD(d, n), DATE_FORMAT(d, 'yyyy-MM-dd')
- Aggregates include COLLECT_LIST(), COLLECT_SET(); arrays: EXPLODE(), SIZE(), ARRAY_CONTAINS()
- Use Spark SQL functions only
"""

_BIGQUERY = """
## BigQuery Standard SQL syntax
- Namespace: `dataset`.`table` (project prefix when given)
- Identifiers: backticks
- Casting: CAST(value AS INT64 | FLOAT64 | STRING) or SAFE_CAST()
- Case-insensitive matching: LOWER(`name`) LIKE '%john%'
- Dates: CURRENT_DATE(), DATE_TRUNC(d, MONTH), EXTRACT(YEAR FROM d), DATE_DIFF(a, b, DAY), FORMAT_DATE('%Y-%m-%d', d)
- Strings: STRPOS(), SUBSTR(); aggregates include ARRAY_AGG(), STRING_AGG()
- QUALIFY is available for filtering window functions
"""

_SNOWFLAKE = """
## Snowflake syntax
- Namespace: "database"."schema"."table"
- Identifiers: double-quotes (case-sensitive)
- Casting: CAST(value AS NUMBER) or value::VARCHAR
- Case-insensitive matching: "name" ILIKE '%john%'
- Dates: CURRENT_DATE(), DATE_TRUNC('day', ts), DATEDIFF('day', a, b), DATEADD('day', 1, d), TO_CHAR(d, 'YYYY-MM-DD')
- Aggregates include LISTAGG(), ARRAY_AGG(); semi-structured: PARSE_JSON(), OBJECT_CONSTRUCT()
- QUALIFY is available for filtering window functions
"""

_REDSHIFT = """
## Amazon Redshift syntax
- PostgreSQL 8.0.2 dialect with reduced function support
- Identifiers: double-quotes ("column_name", "schema"."table")
- Rounding: ROUND(column::numeric, 2); casting: CAST(value AS INTEGER) or value::VARCHAR
- Case-insensitive matching: "name" ILIKE '%john%'
- Dates: GETDATE(), SYSDATE, DATE_TRUNC('day', ts), DATEDIFF(day, a, b), DATEADD(day, 1, d)
- Aggregates include LISTAGG(); no ARRAY type
"""

_MSSQL = """
## Microsoft SQL Server (T-SQL) syntax
- Identifiers: square brackets ([column_name], [schema].[table])
- Row cap: SELECT TOP n ... (there is no LIMIT); paging with OFFSET ... FETCH NEXT n ROWS ONLY
- Casting: CAST(value AS INT) or CONVERT(VARCHAR, d, 23)
- LIKE is case-insensitive under the default collation
- Dates: GETDATE(), DATEPART(YEAR, d), DATEDIFF(day, a, b), DATEADD(day, 1, d), FORMAT(d, 'yyyy-MM-dd')
- Strings: CONCAT() or +, CHARINDEX(), LEN(); STRING_AGG() on 2017+
- Booleans are BIT values 1/0
"""

_SQLITE = """
## SQLite syntax
- Identifiers: double-quotes ("column_name", "table")
- Casting: CAST(value AS INTEGER | REAL | TEXT)
- LIKE is case-insensitive for ASCII text
- Dates are stored as text: date(), datetime(), strftime('%Y-%m', d)
- Window functions and CTEs are supported; no RIGHT/FULL JOIN before 3.39
"""

_MONGODB = """
## MongoDB query language
- Produce an aggregation pipeline as a JSON array, not SQL
- Stages: $match, $project, $group, $sort, $limit, $lookup, $unwind
- Operators: $eq, $ne, $gt, $gte, $lt, $lte, $in, $nin, $and, $or, $exists
- Case-insensitive matching: { "name": { "$regex": "john", "$options": "i" } }
- Dates: $dateToString, $year, $month, $dayOfMonth
- Example:
  [
    { "$match": { "status": "active" } },
    { "$group": { "_id": "$category", "total": { "$sum": "$amount" } } },
    { "$sort": { "total": -1 } },
    { "$limit": 10 }
  ]
"""

_DYNAMODB = """
## DynamoDB request syntax
- Produce Query (or Scan, only when unavoidable) parameters as a JSON object, not SQL
- Query needs a partition key condition in KeyConditionExpression; FilterExpression refines results
- Functions: begins_with(), contains(), attribute_exists(), attribute_not_exists()
- Use ProjectionExpression to select attributes; "Limit" caps evaluated items
- No joins and no aggregation; aggregate in application code
- Example:
  { "TableName": "Users", "KeyConditionExpression": "user_id = :uid",
    "ExpressionAttributeValues": { ":uid": "123" }, "Limit": 10 }
"""

DIALECT_RULES: Dict[BackendId, str] = {
    BackendId.POSTGRESQL: _POSTGRESQL,
    BackendId.MYSQL: _MYSQL,
    BackendId.MARIADB: _MARIADB,
    BackendId.DATABRICKS: _DATABRICKS,
    BackendId.BIGQUERY: _BIGQUERY,
    BackendId.SNOWFLAKE: _SNOWFLAKE,
    BackendId.REDSHIFT: _REDSHIFT,
    BackendId.MSSQL: _MSSQL,
    BackendId.SQLITE: _SQLITE,
    BackendId.MONGODB: _MONGODB,
    BackendId.DYNAMODB: _DYNAMODB,
}
