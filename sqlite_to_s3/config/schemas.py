"""Configuration schemas for sqlite-to-s3."""

BACKUP_CONFIG_SCHEMA = {
    "type": "object",
    "properties": {
        "bucket": {
            "type": "string",
            "minLength": 1,
            "description": "S3 bucket holding the backup objects",
        },
        "database_path": {
            "type": "string",
            "minLength": 1,
            "description": "Path to the live SQLite database",
        },
        "key_prefix": {
            "type": "string",
            "description": "Namespace prepended to every object key",
        },
        "backup_path": {
            "type": "string",
            "minLength": 1,
            "description": "Local working file reused by backup and restore runs",
        },
        "timeout_ms": {
            "type": "integer",
            "minimum": 1,
            "description": "SQLite busy timeout in milliseconds",
        },
        "encryption_key": {
            "type": "string",
            "description": "Passphrase for backup encryption (empty disables encryption)",
        },
        "cron_schedule": {
            "type": "string",
            "pattern": r"^\s*\S+(\s+\S+){4}\s*$",
            "description": "Five-field cron expression",
        },
        "webhook_url": {
            "type": "string",
            "pattern": r"^https?://",
            "description": "URL called with POST after a successful backup",
        },
        "endpoint_url": {
            "type": "string",
            "pattern": r"^https?://",
            "description": "S3-compatible endpoint override",
        },
        "crontab_path": {
            "type": "string",
            "minLength": 1,
            "description": "Crontab file written by the cron command",
        },
    },
    "required": ["bucket", "database_path"],
    "additionalProperties": False,
}

# Environment variable -> configuration key
ENVIRONMENT_KEYS = {
    "S3_BUCKET": "bucket",
    "DATABASE_PATH": "database_path",
    "S3_KEY_PREFIX": "key_prefix",
    "BACKUP_PATH": "backup_path",
    "SQLITE_TIMEOUT_MS": "timeout_ms",
    "ENCRYPTION_KEY": "encryption_key",
    "CRON_SCHEDULE": "cron_schedule",
    "POST_WEBHOOK_URL": "webhook_url",
    "ENDPOINT_URL": "endpoint_url",
    "CRONTAB_PATH": "crontab_path",
}
